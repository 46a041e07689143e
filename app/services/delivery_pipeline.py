"""Pipeline orchestrator: validate, store, expose, dispatch, clean up."""

from enum import Enum

from app.models.delivery import DeliveryReceipt, StoredFile, UploadRequest
from app.services.access_grants import AccessGrantRegistry
from app.services.cleanup_service import CleanupScheduler
from app.services.whatsapp_service import DeliveryError, WhatsAppService
from app.storage.abstractions import IStorageBackend, StorageError
from app.utils.audit import log_transaction
from app.utils.logger import logger
from app.utils.validators import UploadValidator


class PipelineState(str, Enum):
    VALIDATED = "validated"
    STORED = "stored"
    GRANT_ISSUED = "grant_issued"
    DELIVERED = "delivered"
    DISPATCH_FAILED = "dispatch_failed"


class DeliveryPipeline:
    """Runs one upload through to the gateway.

    Failure policy: validation errors abort before storage; storage errors
    abort before a grant or dispatch; dispatch errors leave the stored file
    (and its grant) in place for a manual retry. Only a delivered document
    is handed to the cleanup scheduler.
    """

    def __init__(
        self,
        storage: IStorageBackend,
        grants: AccessGrantRegistry,
        gateway: WhatsAppService,
        cleanup: CleanupScheduler | None = None,
        validator: UploadValidator | None = None,
        cleanup_enabled: bool = True,
    ):
        self.storage = storage
        self.grants = grants
        self.gateway = gateway
        self.cleanup = cleanup
        self.validator = validator or UploadValidator()
        self.cleanup_enabled = cleanup_enabled

    async def run(self, request: UploadRequest) -> DeliveryReceipt:
        logger.info(
            f"Processing PDF upload for phone: {request.phone_number_raw}, "
            f"file: {request.original_name}"
        )

        self.validator.validate(request)
        logger.debug(f"Upload {request.original_name} {PipelineState.VALIDATED.value}")

        stored = await self._store(request)
        state = PipelineState.STORED

        document_url = self.storage.public_url(stored.backend_ref)
        if document_url is None:
            grant = self.grants.issue(stored.backend_ref, grant_id=stored.id)
            document_url = self.grants.download_url(grant.id)
            state = PipelineState.GRANT_ISSUED
        logger.debug(f"Pipeline {stored.id} reached state {state.value}")

        try:
            result = await self.gateway.send_document(
                request.phone_number_raw, document_url, request.original_name
            )
        except DeliveryError as e:
            logger.error(
                f"Failed to send WhatsApp message for {stored.stored_name} "
                f"({PipelineState.DISPATCH_FAILED.value}): {e}. File retained for retry."
            )
            raise
        logger.debug(f"Pipeline {stored.id} reached state {PipelineState.DELIVERED.value}")
        logger.info(f"WhatsApp message sent successfully. Message ID: {result.provider_message_id}")

        log_transaction(
            request.phone_number_raw,
            request.original_name,
            stored.stored_name,
            "sent",
            result.provider_message_id,
        )

        if self.cleanup_enabled and self.cleanup is not None:
            self.cleanup.schedule_cleanup(stored)

        return DeliveryReceipt(
            message_id=result.provider_message_id,
            phone_number=request.phone_number_raw,
            file_name=request.original_name,
            document_url=document_url,
            stored_file=stored,
        )

    async def _store(self, request: UploadRequest) -> StoredFile:
        file_id = StoredFile.new_id()
        stored_name = StoredFile.derive_name(file_id, request.original_name)
        try:
            locator = await self.storage.save(
                request.file_bytes, stored_name, content_type=request.declared_mime_type
            )
        except StorageError as e:
            logger.error(f"Failed to store PDF: {e}")
            raise
        logger.info(f"PDF stored successfully: {stored_name}")
        return StoredFile(
            id=file_id,
            stored_name=stored_name,
            backend_ref=locator,
            size_bytes=request.size_bytes,
        )

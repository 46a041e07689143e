"""Unit tests for the delivery pipeline orchestrator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.delivery import DeliveryResult, UploadRequest
from app.services.access_grants import AccessGrantRegistry
from app.services.delivery_pipeline import DeliveryPipeline
from app.services.whatsapp_service import DeliveryError
from app.storage import StorageError
from app.utils.validators import InvalidPhoneNumber, UploadValidator, ValidationError


def _request(content: bytes = b"%PDF" + b"0" * 1020, phone: str = "9876543210") -> UploadRequest:
    return UploadRequest.from_bytes(phone, content, "receipt.pdf", "application/pdf")


@pytest.fixture
def storage():
    backend = MagicMock()
    backend.save = AsyncMock(side_effect=lambda content, name, content_type: f"uploads/{name}")
    backend.public_url = MagicMock(return_value=None)
    return backend


@pytest.fixture
def gateway():
    service = MagicMock()
    service.send_document = AsyncMock(
        return_value=DeliveryResult(succeeded=True, provider_message_id="msg-1", raw_provider_payload={})
    )
    return service


@pytest.fixture
def grants(clock):
    return AccessGrantRegistry(base_url="https://svc.example.com", ttl_seconds=600, clock=clock)


@pytest.fixture
def pipeline(storage, grants, gateway):
    return DeliveryPipeline(
        storage=storage,
        grants=grants,
        gateway=gateway,
        cleanup=MagicMock(),
        validator=UploadValidator(max_size=5 * 1024 * 1024, allowed_mime_types=["application/pdf"]),
    )


class TestDeliveryPipeline:
    """Test cases for DeliveryPipeline."""

    async def test_delivers_through_grant(self, pipeline, storage, grants, gateway):
        receipt = await pipeline.run(_request())

        storage.save.assert_awaited_once()
        stored = receipt.stored_file
        assert stored.stored_name == f"{stored.id}_receipt.pdf"
        assert stored.backend_ref == f"uploads/{stored.stored_name}"
        assert receipt.document_url == f"https://svc.example.com/download/{stored.id}"
        assert grants.resolve(stored.id) == stored.backend_ref

        gateway.send_document.assert_awaited_once_with("9876543210", receipt.document_url, "receipt.pdf")
        assert receipt.message_id == "msg-1"
        pipeline.cleanup.schedule_cleanup.assert_called_once_with(stored)

    async def test_backend_public_url_skips_grant(self, pipeline, storage, grants, gateway):
        storage.public_url.return_value = "https://bucket.example.com/fee-receipts/x.pdf"

        receipt = await pipeline.run(_request())

        assert receipt.document_url == "https://bucket.example.com/fee-receipts/x.pdf"
        assert len(grants) == 0
        assert gateway.send_document.call_args.args[1] == receipt.document_url

    @pytest.mark.parametrize("content", [b"", b"x" * (5 * 1024 * 1024 + 1)])
    async def test_invalid_upload_never_reaches_storage(self, pipeline, storage, gateway, content):
        with pytest.raises(ValidationError):
            await pipeline.run(_request(content))

        storage.save.assert_not_called()
        gateway.send_document.assert_not_called()

    async def test_storage_failure_aborts(self, pipeline, storage, grants, gateway):
        storage.save.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            await pipeline.run(_request())

        assert len(grants) == 0
        gateway.send_document.assert_not_called()
        pipeline.cleanup.schedule_cleanup.assert_not_called()

    async def test_dispatch_failure_retains_file(self, pipeline, storage, grants, gateway):
        gateway.send_document.side_effect = DeliveryError("Failed to send WhatsApp message: 500")

        with pytest.raises(DeliveryError):
            await pipeline.run(_request())

        stored_name = storage.save.call_args.args[1]
        file_id = stored_name.split("_", 1)[0]
        assert grants.resolve(file_id) == f"uploads/{stored_name}"
        storage.delete.assert_not_called()
        pipeline.cleanup.schedule_cleanup.assert_not_called()

    async def test_unnormalizable_phone_propagates(self, pipeline, gateway):
        gateway.send_document.side_effect = InvalidPhoneNumber("Phone number too short")

        with pytest.raises(InvalidPhoneNumber):
            await pipeline.run(_request(phone="0987654321"))

        pipeline.cleanup.schedule_cleanup.assert_not_called()

    async def test_cleanup_disabled(self, pipeline):
        pipeline.cleanup_enabled = False

        await pipeline.run(_request())

        pipeline.cleanup.schedule_cleanup.assert_not_called()

    async def test_directory_parts_dropped_from_stored_name(self, pipeline, storage):
        request = UploadRequest.from_bytes("9876543210", b"%PDF-1", "../../etc/receipt.pdf", "application/pdf")

        receipt = await pipeline.run(request)

        assert receipt.stored_file.stored_name.endswith("_receipt.pdf")
        assert "/" not in receipt.stored_file.stored_name

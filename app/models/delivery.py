"""Data models for the document delivery pipeline."""

from datetime import UTC, datetime, timedelta
from pathlib import PurePath
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNKNOWN_MESSAGE_ID = "unknown"


class UploadRequest(BaseModel):
    """A document upload and its destination, alive for one pipeline run."""

    phone_number_raw: str
    file_bytes: bytes = Field(repr=False)
    original_name: str
    declared_mime_type: str
    size_bytes: int = Field(..., ge=0)

    @classmethod
    def from_bytes(
        cls,
        phone_number: str,
        content: bytes,
        original_name: str,
        mime_type: str,
    ) -> "UploadRequest":
        return cls(
            phone_number_raw=phone_number,
            file_bytes=content,
            original_name=original_name,
            declared_mime_type=mime_type,
            size_bytes=len(content),
        )


class StoredFile(BaseModel):
    """A document written to the storage backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    stored_name: str
    backend_ref: str
    size_bytes: int

    @staticmethod
    def new_id() -> str:
        return str(uuid4())

    @staticmethod
    def derive_name(file_id: str, original_name: str) -> str:
        return f"{file_id}_{PurePath(original_name).name}"


class AccessGrant(BaseModel):
    """Time-bounded permission to fetch a stored document."""

    model_config = ConfigDict(frozen=True)

    id: str
    target_ref: str
    issued_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def check_window(self) -> "AccessGrant":
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        return self

    def is_valid(self, now: datetime) -> bool:
        return now <= self.expires_at


class DeliveryResult(BaseModel):
    """Normalized outcome of one gateway dispatch."""

    succeeded: bool
    provider_message_id: str = UNKNOWN_MESSAGE_ID
    raw_provider_payload: object = Field(default=None, repr=False)


class CleanupTask(BaseModel):
    """Pending archive/purge of a delivered document."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    file_ref: StoredFile
    archive_at: timedelta
    purge_at: timedelta
    scheduled_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    archived: bool = False


class DeliveryReceipt(BaseModel):
    """What a successful pipeline run hands back to the HTTP layer."""

    message_id: str
    phone_number: str
    file_name: str
    document_url: str
    stored_file: StoredFile
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

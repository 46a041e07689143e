"""Delivery pipeline data models."""

from app.models.delivery import (
    UNKNOWN_MESSAGE_ID,
    AccessGrant,
    CleanupTask,
    DeliveryReceipt,
    DeliveryResult,
    StoredFile,
    UploadRequest,
)

__all__ = [
    "UNKNOWN_MESSAGE_ID",
    "AccessGrant",
    "CleanupTask",
    "DeliveryReceipt",
    "DeliveryResult",
    "StoredFile",
    "UploadRequest",
]

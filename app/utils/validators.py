"""Validation utilities for phone numbers and uploaded documents."""

import re
from pathlib import PurePath

from app.config import settings
from app.utils.logger import logger

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


class ValidationError(Exception):
    """Raised when validation fails."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidPhoneNumber(ValidationError):
    """Raised when a phone number cannot be normalized."""

    pass


def _digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def validate_phone_number(phone: str | None) -> bool:
    """Loose admission check: 10 to 15 digits once separators are removed."""
    if not phone or not isinstance(phone, str):
        return False
    return MIN_PHONE_DIGITS <= len(_digits_only(phone)) <= MAX_PHONE_DIGITS


def normalize_phone(raw: str, country_code: str | None = None) -> str:
    """Turn a user-entered number into an international number without '+'.

    Heuristic for a single default country: one leading zero is dropped and
    bare 10-digit numbers get the country prefix. Numbers carrying another
    country code pass through as long as they have 10-15 digits.
    """
    prefix = country_code or settings.default_country_code
    cleaned = _digits_only(raw or "")

    if cleaned.startswith("0"):
        cleaned = cleaned[1:]

    if len(cleaned) == MIN_PHONE_DIGITS and not cleaned.startswith(prefix):
        cleaned = prefix + cleaned

    if len(cleaned) < MIN_PHONE_DIGITS:
        raise InvalidPhoneNumber("Phone number too short")

    return cleaned[:MAX_PHONE_DIGITS]


def validate_extension(filename: str | None, allowed: list[str] | None = None) -> None:
    """Boundary gate on the file extension, independent of the declared MIME type."""
    allowed = allowed or settings.allowed_extensions
    suffix = PurePath(filename or "").suffix.lower()
    if suffix not in allowed:
        logger.warning(f"Rejected upload with extension '{suffix}'")
        raise ValidationError("Only PDF files are allowed")


class UploadValidator:
    """Admission control for an incoming document."""

    def __init__(
        self,
        max_size: int | None = None,
        allowed_mime_types: list[str] | None = None,
    ):
        self.max_size = max_size or settings.max_upload_bytes
        self.allowed_mime_types = allowed_mime_types or settings.allowed_mime_types

    def validate(self, upload) -> None:
        """Check presence, MIME type, size limit and non-emptiness, in that order."""
        if upload is None:
            logger.warning("No file provided in request")
            raise ValidationError("No PDF file provided")

        if upload.declared_mime_type not in self.allowed_mime_types:
            logger.warning(f"Invalid MIME type: {upload.declared_mime_type}")
            raise ValidationError("Only PDF files are allowed")

        if upload.size_bytes > self.max_size:
            logger.warning(f"File too large: {upload.size_bytes} bytes")
            limit_mb = self.max_size / (1024 * 1024)
            raise ValidationError(f"File size exceeds maximum limit of {limit_mb:g}MB")

        if upload.size_bytes == 0:
            logger.warning("Empty file provided")
            raise ValidationError("File is empty")

        logger.debug(
            f"File validation passed: {upload.original_name} ({upload.size_bytes} bytes)"
        )

"""Application configuration using Pydantic settings."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="WhatsApp Document Delivery")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Exotel WhatsApp gateway
    exotel_api_key: Optional[str] = Field(default=None)
    exotel_api_token: Optional[str] = Field(default=None)
    exotel_sid: Optional[str] = Field(default=None)
    exotel_api_base_url: str = Field(default="https://api.exotel.com")
    exotel_template_name: str = Field(default="college_fee_receipt")
    exotel_template_language: str = Field(default="en")
    exotel_from_number: str = Field(default="919442027368")
    exotel_status_callback: Optional[str] = Field(default=None)
    gateway_timeout_seconds: float = Field(default=30.0)
    url_probe_timeout_seconds: float = Field(default=5.0)

    # Storage
    storage_type: str = Field(default="local", description="local or s3")
    local_storage_path: str = Field(default="./uploads")
    archive_path: str = Field(default="./archives")
    s3_bucket_name: Optional[str] = Field(default=None)
    s3_region: str = Field(default="us-east-1")
    s3_access_key: Optional[str] = Field(default=None)
    s3_secret_key: Optional[str] = Field(default=None)
    s3_endpoint_url: Optional[str] = Field(default=None)
    s3_key_prefix: str = Field(default="fee-receipts")
    s3_url_mode: str = Field(default="presigned", description="presigned, public or proxy")
    s3_public_base_url: Optional[str] = Field(default=None)

    # Uploads
    max_upload_bytes: int = Field(default=5 * 1024 * 1024)
    allowed_mime_types: list[str] = Field(default_factory=lambda: ["application/pdf"])
    allowed_extensions: list[str] = Field(default_factory=lambda: [".pdf"])

    # Temporary download URLs
    public_base_url: str = Field(default="http://localhost:8000")
    grant_ttl_seconds: int = Field(default=600)
    grant_sweep_interval_seconds: int = Field(default=300)

    # Cleanup
    cleanup_enabled: bool = Field(default=True)
    cleanup_archive_delay_seconds: float = Field(default=1.0)
    cleanup_buffer_seconds: int = Field(default=300)

    # Phone numbers
    default_country_code: str = Field(default="91")

    @field_validator("storage_type")
    @classmethod
    def validate_storage_type(cls, v: str) -> str:
        """Validate storage backend type."""
        if v.lower() not in ["local", "s3"]:
            raise ValueError("Storage type must be 'local' or 's3'")
        return v.lower()

    @field_validator("s3_url_mode")
    @classmethod
    def validate_s3_url_mode(cls, v: str) -> str:
        """Validate how object storage documents are exposed."""
        allowed = ["presigned", "public", "proxy"]
        if v.lower() not in allowed:
            raise ValueError(f"S3 URL mode must be one of {allowed}")
        return v.lower()

    @field_validator("grant_ttl_seconds", "grant_sweep_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Durations must be strictly positive."""
        if v <= 0:
            raise ValueError("Duration must be greater than zero")
        return v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        if self.storage_type == "local":
            Path(self.local_storage_path).mkdir(parents=True, exist_ok=True)
            Path(self.archive_path).mkdir(parents=True, exist_ok=True)
        if self.log_file:
            Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()

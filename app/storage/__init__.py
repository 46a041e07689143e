"""Document storage layer - abstraction and the two backend variants."""

from app.config import Settings, settings
from app.storage.abstractions import IStorageBackend, StorageError
from app.storage.local_backend import LocalStorageBackend
from app.storage.s3_backend import S3StorageBackend


def create_storage_backend(config: Settings | None = None) -> IStorageBackend:
    """Build the backend selected by configuration."""
    config = config or settings
    if config.storage_type == "s3":
        return S3StorageBackend(
            bucket_name=config.s3_bucket_name,
            key_prefix=config.s3_key_prefix,
            url_mode=config.s3_url_mode,
            url_expiration=config.grant_ttl_seconds,
            public_base_url=config.s3_public_base_url,
            proxy_base_url=config.public_base_url,
        )
    return LocalStorageBackend(config.local_storage_path, config.archive_path)


__all__ = [
    "IStorageBackend",
    "StorageError",
    "LocalStorageBackend",
    "S3StorageBackend",
    "create_storage_backend",
]

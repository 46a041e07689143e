"""Object storage backend for documents in S3 (or any S3-compatible service)."""

import asyncio
from functools import partial
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.storage.abstractions import IStorageBackend, StorageError
from app.utils.logger import logger


class S3StorageBackend(IStorageBackend):
    """Stores documents under a key prefix and exposes them through a URL.

    ``url_mode`` selects the deployment profile:
      presigned  time-limited signed URL, object stays private
      public     object uploaded with a public-read ACL, permanent URL
      proxy      URL of this service's streaming endpoint, no token
    """

    name = "s3"

    def __init__(
        self,
        bucket_name: str | None = None,
        key_prefix: str | None = None,
        url_mode: str | None = None,
        url_expiration: int | None = None,
        public_base_url: str | None = None,
        proxy_base_url: str | None = None,
        s3_client=None,
    ):
        self.bucket_name = bucket_name or settings.s3_bucket_name
        self.key_prefix = (key_prefix if key_prefix is not None else settings.s3_key_prefix).strip("/")
        self.url_mode = url_mode or settings.s3_url_mode
        self.url_expiration = url_expiration or settings.grant_ttl_seconds
        self.public_base_url = public_base_url or settings.s3_public_base_url
        self.proxy_base_url = (proxy_base_url or settings.public_base_url).rstrip("/")

        if not self.bucket_name:
            raise StorageError("S3 bucket name not configured")

        if s3_client is None:
            kwargs = {
                "region_name": settings.s3_region,
                "aws_access_key_id": settings.s3_access_key,
                "aws_secret_access_key": settings.s3_secret_key,
            }
            if settings.s3_endpoint_url:
                kwargs["endpoint_url"] = settings.s3_endpoint_url
            s3_client = boto3.client("s3", **kwargs)
        self.s3_client = s3_client

    def key_for(self, name: str) -> str:
        return f"{self.key_prefix}/{name}" if self.key_prefix else name

    def owns_key(self, key: str) -> bool:
        """True if the key lives under this backend's prefix."""
        return not self.key_prefix or key.startswith(f"{self.key_prefix}/")

    async def _call(self, method, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(method, **kwargs))

    async def save(self, content: bytes, name: str, content_type: str = "application/pdf") -> str:
        key = self.key_for(name)
        kwargs = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": content,
            "ContentType": content_type,
        }
        if self.url_mode == "public":
            kwargs["ACL"] = "public-read"
        try:
            await self._call(self.s3_client.put_object, **kwargs)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload {key} to S3: {e}")
            raise StorageError(f"S3 upload failed: {e}") from e
        logger.info(f"Successfully uploaded {key} to S3 bucket {self.bucket_name}")
        return key

    async def delete(self, locator: str) -> None:
        try:
            await self._call(self.s3_client.delete_object, Bucket=self.bucket_name, Key=locator)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete {locator} from S3: {e}")
            raise StorageError(f"S3 delete failed: {e}") from e
        logger.info(f"File deleted from S3: {locator}")

    async def archive(self, locator: str) -> None:
        # Object storage has no separate archive tier.
        logger.debug(f"No archive step for S3 object {locator}")

    async def purge(self, locator: str) -> None:
        await self.delete(locator)

    def public_url(self, locator: str) -> str | None:
        if self.url_mode == "proxy":
            return f"{self.proxy_base_url}/download-object?fileId={quote(locator, safe='')}"

        if self.url_mode == "public":
            base = self.public_base_url or f"https://{self.bucket_name}.s3.amazonaws.com"
            return f"{base.rstrip('/')}/{quote(locator)}"

        try:
            url: str = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": locator},
                ExpiresIn=self.url_expiration,
            )
            return url
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to generate pre-signed URL for {locator}: {e}")
            raise StorageError(f"Failed to generate pre-signed URL: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            await self._call(self.s3_client.head_object, Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.error(f"Failed to check {key} in S3: {e}")
            raise StorageError(f"S3 head failed: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to check {key} in S3: {e}")
            raise StorageError(f"S3 head failed: {e}") from e

    async def open_stream(self, key: str):
        """Return the streaming body of an object, for the proxy download endpoint."""
        try:
            response = await self._call(self.s3_client.get_object, Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to download {key} from S3: {e}")
            raise StorageError(f"S3 download failed: {e}") from e
        return response["Body"]

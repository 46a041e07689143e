"""Abstract interface for document storage backends (Dependency Inversion)."""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when storage operations fail."""

    pass


class IStorageBackend(ABC):
    """Durable medium where uploaded documents are written.

    Backends that can expose a fetchable URL on their own return it from
    ``public_url``; the others return None and the caller issues a temporary
    access grant instead.
    """

    name: str = "abstract"

    @abstractmethod
    async def save(self, content: bytes, name: str, content_type: str = "application/pdf") -> str:
        """
        Write a document.

        :param content: Raw document bytes.
        :param name: Stored name, unique per upload.
        :param content_type: MIME type recorded with the object where supported.
        :return: Backend-specific locator for the stored document.
        """
        pass

    @abstractmethod
    async def delete(self, locator: str) -> None:
        """Remove the stored document. Raises StorageError on failure."""
        pass

    @abstractmethod
    async def archive(self, locator: str) -> None:
        """Move the document to the retention area (no-op when there is none)."""
        pass

    @abstractmethod
    async def purge(self, locator: str) -> None:
        """Permanently remove whatever copy the retention policy left behind."""
        pass

    def public_url(self, locator: str) -> str | None:
        """Return a URL the gateway can fetch directly, or None."""
        return None

"""Local filesystem storage backend."""

import asyncio
from pathlib import Path

from app.config import settings
from app.storage.abstractions import IStorageBackend, StorageError
from app.utils.logger import logger


class LocalStorageBackend(IStorageBackend):
    """Stores documents on disk; archival is a rename into a separate directory."""

    name = "local"

    def __init__(self, storage_dir: str | Path | None = None, archive_dir: str | Path | None = None):
        self.storage_dir = Path(storage_dir or settings.local_storage_path)
        self.archive_dir = Path(archive_dir or settings.archive_path)

    def path_for(self, locator: str) -> Path:
        return Path(locator)

    def archived_path_for(self, locator: str) -> Path:
        return self.archive_dir / Path(locator).name

    async def save(self, content: bytes, name: str, content_type: str = "application/pdf") -> str:
        target = self.storage_dir / name
        try:
            await self._run(self._write, target, content)
        except OSError as e:
            logger.error(f"Failed to save file locally: {e}")
            raise StorageError(f"Local write failed: {e}") from e
        logger.info(f"File saved locally: {target}")
        return str(target)

    async def delete(self, locator: str) -> None:
        path = self.path_for(locator)
        try:
            await self._run(path.unlink)
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageError(f"Local delete failed: {e}") from e
        logger.info(f"File deleted: {path}")

    async def archive(self, locator: str) -> None:
        source = self.path_for(locator)
        target = self.archived_path_for(locator)
        try:
            await self._run(self._move, source, target)
        except OSError as e:
            logger.error(f"Failed to archive {source}: {e}")
            raise StorageError(f"Archive failed: {e}") from e
        logger.info(f"File archived: {target.name}")

    async def purge(self, locator: str) -> None:
        target = self.archived_path_for(locator)
        try:
            await self._run(target.unlink)
        except OSError as e:
            logger.error(f"Failed to delete archived file {target}: {e}")
            raise StorageError(f"Purge failed: {e}") from e
        logger.info(f"Archived file deleted: {target.name}")

    @staticmethod
    async def _run(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    @staticmethod
    def _move(source: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)

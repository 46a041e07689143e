"""Cleanup service for archiving and purging delivered documents."""

from collections.abc import Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from app.config import settings
from app.models.delivery import CleanupTask, StoredFile
from app.services.access_grants import utc_now
from app.storage.abstractions import IStorageBackend, StorageError
from app.utils.logger import logger


class CleanupScheduler:
    """Schedules the archive-then-purge retention policy for a delivered file.

    The archive step runs shortly after delivery; the purge step runs after a
    further ``ttl + buffer`` so the gateway can still fetch the document while
    its temporary URL is live. Both steps are best-effort: failures are logged
    and never retried. Pending tasks are kept in memory only.
    """

    def __init__(
        self,
        storage: IStorageBackend,
        scheduler: BaseScheduler,
        archive_delay_seconds: float | None = None,
        ttl_seconds: int | None = None,
        buffer_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.scheduler = scheduler
        self.archive_delay = timedelta(
            seconds=archive_delay_seconds
            if archive_delay_seconds is not None
            else settings.cleanup_archive_delay_seconds
        )
        self.purge_delay = timedelta(
            seconds=(ttl_seconds or settings.grant_ttl_seconds)
            + (buffer_seconds if buffer_seconds is not None else settings.cleanup_buffer_seconds)
        )
        self._clock = clock
        self._tasks: dict[str, CleanupTask] = {}

    def schedule_cleanup(self, stored_file: StoredFile) -> CleanupTask:
        """Register archive and purge jobs for ``stored_file``; fire-and-forget."""
        now = self._clock()
        task = CleanupTask(
            file_ref=stored_file,
            archive_at=self.archive_delay,
            purge_at=self.purge_delay,
            scheduled_at=now,
        )
        self._tasks[task.id] = task

        self.scheduler.add_job(
            self.run_archive,
            trigger=DateTrigger(run_date=now + task.archive_at),
            args=[task.id],
            id=f"archive-{task.id}",
            name=f"Archive {stored_file.stored_name}",
            misfire_grace_time=None,
        )
        self.scheduler.add_job(
            self.run_purge,
            trigger=DateTrigger(run_date=now + task.archive_at + task.purge_at),
            args=[task.id],
            id=f"purge-{task.id}",
            name=f"Purge {stored_file.stored_name}",
            misfire_grace_time=None,
        )
        logger.info(
            f"Cleanup scheduled for {stored_file.stored_name}: archive in "
            f"{task.archive_at.total_seconds():g}s, purge "
            f"{task.purge_at.total_seconds():g}s later"
        )
        return task

    async def run_archive(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning(f"Archive requested for unknown cleanup task {task_id}")
            return
        try:
            await self.storage.archive(task.file_ref.backend_ref)
            self._tasks[task_id] = task.model_copy(update={"archived": True})
        except StorageError as e:
            logger.error(f"Error during file cleanup of {task.file_ref.stored_name}: {e}")

    async def run_purge(self, task_id: str) -> None:
        task = self._tasks.pop(task_id, None)
        if task is None:
            logger.warning(f"Purge requested for unknown cleanup task {task_id}")
            return
        try:
            await self.storage.purge(task.file_ref.backend_ref)
        except StorageError as e:
            logger.error(f"Error deleting archived file {task.file_ref.stored_name}: {e}")

    def pending_tasks(self) -> list[CleanupTask]:
        """Cleanup tasks whose purge step has not run yet."""
        return list(self._tasks.values())

    def cancel(self, task_id: str) -> bool:
        """Scheduled cleanups cannot be aborted; always returns False."""
        logger.info(f"Cleanup task {task_id} cannot be cancelled once scheduled")
        return False

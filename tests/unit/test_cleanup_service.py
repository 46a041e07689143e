"""Unit tests for the cleanup scheduler."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from app.models.delivery import StoredFile
from app.services.cleanup_service import CleanupScheduler
from app.storage import S3StorageBackend, StorageError


@pytest.fixture
def stored_file():
    return StoredFile(
        id="file-1",
        stored_name="file-1_receipt.pdf",
        backend_ref="uploads/file-1_receipt.pdf",
        size_bytes=1024,
    )


@pytest.fixture
def storage():
    backend = MagicMock()
    backend.archive = AsyncMock()
    backend.purge = AsyncMock()
    return backend


@pytest.fixture
def cleanup(storage, clock):
    return CleanupScheduler(
        storage,
        MagicMock(),
        archive_delay_seconds=1,
        ttl_seconds=600,
        buffer_seconds=300,
        clock=clock,
    )


class TestCleanupScheduler:
    """Test cases for CleanupScheduler."""

    def test_schedule_registers_archive_and_purge(self, cleanup, stored_file, clock):
        task = cleanup.schedule_cleanup(stored_file)

        assert task.archive_at == timedelta(seconds=1)
        assert task.purge_at == timedelta(seconds=900)
        assert cleanup.scheduler.add_job.call_count == 2

        archive_call, purge_call = cleanup.scheduler.add_job.call_args_list
        assert archive_call.args[0] == cleanup.run_archive
        assert archive_call.kwargs["trigger"].run_date == clock.now + timedelta(seconds=1)
        assert archive_call.kwargs["args"] == [task.id]
        assert purge_call.args[0] == cleanup.run_purge
        assert purge_call.kwargs["trigger"].run_date == clock.now + timedelta(seconds=901)

    def test_pending_tasks_observable(self, cleanup, stored_file):
        task = cleanup.schedule_cleanup(stored_file)
        assert [t.id for t in cleanup.pending_tasks()] == [task.id]

    async def test_archive_then_purge(self, cleanup, storage, stored_file):
        task = cleanup.schedule_cleanup(stored_file)

        await cleanup.run_archive(task.id)
        storage.archive.assert_awaited_once_with("uploads/file-1_receipt.pdf")
        assert cleanup.pending_tasks()[0].archived is True

        await cleanup.run_purge(task.id)
        storage.purge.assert_awaited_once_with("uploads/file-1_receipt.pdf")
        assert cleanup.pending_tasks() == []

    async def test_failures_are_logged_not_raised(self, cleanup, storage, stored_file):
        storage.archive.side_effect = StorageError("file already removed")
        storage.purge.side_effect = StorageError("file already removed")
        task = cleanup.schedule_cleanup(stored_file)

        await cleanup.run_archive(task.id)
        assert cleanup.pending_tasks()[0].archived is False

        await cleanup.run_purge(task.id)
        assert cleanup.pending_tasks() == []

    async def test_unknown_task_ignored(self, cleanup, storage):
        await cleanup.run_archive("missing")
        await cleanup.run_purge("missing")

        storage.archive.assert_not_awaited()
        storage.purge.assert_not_awaited()

    def test_cancel_is_noop(self, cleanup, stored_file):
        task = cleanup.schedule_cleanup(stored_file)

        assert cleanup.cancel(task.id) is False
        assert len(cleanup.pending_tasks()) == 1

    async def test_s3_connection_failure_during_purge_is_logged(self, stored_file, clock):
        client = MagicMock()
        client.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.internal:9000")
        backend = S3StorageBackend(bucket_name="receipts", key_prefix="fee-receipts", s3_client=client)
        cleanup = CleanupScheduler(
            backend,
            MagicMock(),
            archive_delay_seconds=1,
            ttl_seconds=600,
            buffer_seconds=300,
            clock=clock,
        )
        task = cleanup.schedule_cleanup(stored_file)

        await cleanup.run_archive(task.id)
        await cleanup.run_purge(task.id)

        client.delete_object.assert_called_once()
        assert cleanup.pending_tasks() == []

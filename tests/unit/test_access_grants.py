"""Unit tests for the access grant registry."""

import threading
from datetime import timedelta

import pytest

from app.services.access_grants import AccessGrantRegistry


@pytest.fixture
def registry(clock):
    return AccessGrantRegistry(base_url="https://files.example.com/", ttl_seconds=600, clock=clock)


class TestAccessGrantRegistry:
    """Test cases for AccessGrantRegistry."""

    def test_issue_records_window(self, registry, clock):
        grant = registry.issue("uploads/a.pdf")

        assert grant.issued_at == clock.now
        assert grant.expires_at == clock.now + timedelta(minutes=10)
        assert grant.id in registry

    def test_issue_uses_given_id(self, registry):
        grant = registry.issue("uploads/a.pdf", grant_id="file-1")
        assert grant.id == "file-1"
        assert registry.download_url("file-1") == "https://files.example.com/download/file-1"

    def test_reissue_replaces_grant(self, registry):
        registry.issue("uploads/a.pdf", grant_id="file-1")
        registry.issue("uploads/b.pdf", grant_id="file-1")

        assert len(registry) == 1
        assert registry.resolve("file-1") == "uploads/b.pdf"

    def test_valid_immediately_after_issue(self, registry):
        grant = registry.issue("uploads/a.pdf")
        assert registry.resolve(grant.id) == "uploads/a.pdf"

    def test_valid_at_exact_expiry(self, registry, clock):
        grant = registry.issue("uploads/a.pdf")
        clock.advance(minutes=10)
        assert registry.resolve(grant.id) == "uploads/a.pdf"

    def test_invalid_just_after_expiry_and_evicted(self, registry, clock):
        grant = registry.issue("uploads/a.pdf")
        clock.advance(minutes=10, microseconds=1)

        assert registry.resolve(grant.id) is None
        assert grant.id not in registry
        assert registry.resolve(grant.id) is None

    def test_resolve_at_eleven_minutes(self, registry, clock):
        grant = registry.issue("uploads/a.pdf")
        clock.advance(minutes=11)
        assert registry.resolve(grant.id) is None

    def test_unknown_grant(self, registry):
        assert registry.resolve("missing") is None

    def test_custom_ttl(self, registry, clock):
        grant = registry.issue("uploads/a.pdf", ttl=timedelta(seconds=30))
        clock.advance(seconds=31)
        assert registry.resolve(grant.id) is None

    def test_sweep_removes_only_expired(self, registry, clock):
        old = registry.issue("uploads/old.pdf")
        clock.advance(minutes=8)
        fresh = registry.issue("uploads/fresh.pdf")
        clock.advance(minutes=3)

        assert registry.sweep() == 1
        assert old.id not in registry
        assert fresh.id in registry

    def test_sweep_on_empty_table(self, registry):
        assert registry.sweep() == 0

    def test_concurrent_resolve_sees_whole_entry_or_none(self, registry, clock):
        registry.issue("uploads/a.pdf", grant_id="file-1", ttl=timedelta(microseconds=2))
        seen = []
        errors = []

        def record(fn, rounds=2000):
            def run():
                for _ in range(rounds):
                    try:
                        fn()
                    except Exception as e:
                        errors.append(e)
            return run

        workers = [
            threading.Thread(target=record(lambda: seen.append(registry.resolve("file-1")))),
            threading.Thread(target=record(lambda: seen.append(registry.resolve("file-1")))),
            threading.Thread(target=record(registry.sweep)),
            threading.Thread(target=record(
                lambda: registry.issue("uploads/a.pdf", grant_id="file-1", ttl=timedelta(microseconds=2))
            )),
            threading.Thread(target=record(lambda: clock.advance(microseconds=1))),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=30)

        assert errors == []
        assert len(seen) == 4000
        assert set(seen) <= {"uploads/a.pdf", None}
        assert len(registry) <= 1

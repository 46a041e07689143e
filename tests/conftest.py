"""Shared fixtures and test environment."""

import os
from datetime import UTC, datetime, timedelta

import pytest

os.environ.setdefault("EXOTEL_API_KEY", "test-key")
os.environ.setdefault("EXOTEL_API_TOKEN", "test-token")
os.environ.setdefault("EXOTEL_SID", "test-sid")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pdf_bytes() -> bytes:
    header = b"%PDF-1.4\n"
    return header + b"0" * (1024 - len(header))

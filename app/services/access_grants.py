"""Registry of temporary download URLs for documents on private storage."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from app.config import settings
from app.models.delivery import AccessGrant
from app.utils.logger import logger


def utc_now() -> datetime:
    return datetime.now(UTC)


class AccessGrantRegistry:
    """Issues and resolves expiring access grants.

    A grant is valid while ``now <= expires_at``. Expired entries are evicted
    when resolved and by ``sweep``; there is no explicit revoke. All table
    mutations happen under one lock so a lookup racing a sweep sees the entry
    either whole or gone.
    """

    def __init__(
        self,
        base_url: str | None = None,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.base_url = (base_url or settings.public_base_url).rstrip("/")
        self.ttl = timedelta(seconds=ttl_seconds or settings.grant_ttl_seconds)
        self._clock = clock
        self._grants: dict[str, AccessGrant] = {}
        self._lock = threading.Lock()

    def issue(
        self,
        target_ref: str,
        grant_id: str | None = None,
        ttl: timedelta | None = None,
    ) -> AccessGrant:
        """Record a new grant for ``target_ref``, replacing any grant with the same id."""
        ttl = ttl or self.ttl
        issued_at = self._clock()
        grant = AccessGrant(
            id=grant_id or str(uuid4()),
            target_ref=target_ref,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        )
        with self._lock:
            self._grants[grant.id] = grant

        logger.info(
            f"Temporary URL generated: {self.download_url(grant.id)} "
            f"(expires: {grant.expires_at.isoformat()})"
        )
        return grant

    def download_url(self, grant_id: str) -> str:
        return f"{self.base_url}/download/{grant_id}"

    def resolve(self, grant_id: str) -> str | None:
        """Return the target of a live grant, or None if unknown or expired."""
        now = self._clock()
        with self._lock:
            grant = self._grants.get(grant_id)
            if grant is None:
                return None
            if not grant.is_valid(now):
                del self._grants[grant_id]
                expired = True
            else:
                expired = False

        if expired:
            logger.warning(f"Temporary URL expired: {grant_id}")
            return None
        return grant.target_ref

    def sweep(self) -> int:
        """Evict every expired grant; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, grant in self._grants.items() if not grant.is_valid(now)]
            for key in expired:
                del self._grants[key]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired temporary URLs")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._grants.clear()

    def __contains__(self, grant_id: object) -> bool:
        with self._lock:
            return grant_id in self._grants

    def __len__(self) -> int:
        with self._lock:
            return len(self._grants)

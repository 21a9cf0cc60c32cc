"""Per-storefront Redis sync lock.

Keeps a scheduled pass and an on-demand trigger from syncing the same
storefront at once. Without Redis configured the lock is a no-op.
"""
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.asyncio.lock import Lock as AsyncRedisLock


logger = logging.getLogger(__name__)


class SyncLockedError(Exception):
    """Raised when another sync already holds the storefront's lock."""

    def __init__(self, storefront_id: str, lock_key: str):
        self.storefront_id = storefront_id
        self.lock_key = lock_key
        super().__init__(
            f"Sync lock already held for storefront={storefront_id}, key={lock_key}"
        )


class StorefrontSyncLock:
    """Async context manager acquiring a non-blocking lock for one storefront."""

    LOCK_TTL_SECONDS = 1800  # 30 minutes
    KEY_PREFIX = "admatrix:sync_lock"

    def __init__(
        self,
        redis: Optional[Redis],
        storefront_id: str,
        ttl_seconds: int = LOCK_TTL_SECONDS,
    ) -> None:
        self.redis = redis
        self.storefront_id = storefront_id
        self.ttl_seconds = ttl_seconds
        self.lock_key = f"{self.KEY_PREFIX}:{storefront_id}"
        self._lock: Optional[AsyncRedisLock] = None

    async def __aenter__(self) -> "StorefrontSyncLock":
        if self.redis is None:
            return self

        lock = AsyncRedisLock(
            self.redis,
            name=self.lock_key,
            timeout=self.ttl_seconds,
            blocking=False,
        )
        acquired = await lock.acquire(blocking=False)
        if not acquired:
            raise SyncLockedError(self.storefront_id, self.lock_key)

        self._lock = lock
        logger.debug("Acquired sync lock for storefront=%s", self.storefront_id)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._release_best_effort()

    async def _release_best_effort(self) -> None:
        if self._lock:
            try:
                await self._lock.release()
                logger.debug("Released sync lock for storefront=%s", self.storefront_id)
            except Exception as exc:
                logger.error("Failed to release sync lock: %s", exc)
            finally:
                self._lock = None

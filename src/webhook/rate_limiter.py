"""Per-bucket rate-limit state for the HTTP dispatcher."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator, Mapping

BucketId = tuple[str, str | None]


class BucketRateLimiter:
    """Serializes requests per bucket and tracks when exhausted buckets reset.

    A bucket is identified by its key plus the resource id, so two webhooks
    never wait on each other. State comes from the ``X-RateLimit-Remaining``
    and ``X-RateLimit-Reset-After`` response headers.
    """

    def __init__(self) -> None:
        self._locks: dict[BucketId, asyncio.Lock] = {}
        self._holders: dict[BucketId, int] = {}
        self._reset_at: dict[BucketId, float] = {}

    @contextlib.asynccontextmanager
    async def hold(self, bucket: BucketId) -> AsyncIterator[None]:
        """Hold the bucket's lock; the lock is discarded once nobody holds or awaits it."""
        lock = self._locks.get(bucket)
        if lock is None:
            lock = self._locks[bucket] = asyncio.Lock()
        self._holders[bucket] = self._holders.get(bucket, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[bucket] -= 1
            if self._holders[bucket] == 0:
                del self._holders[bucket]
                del self._locks[bucket]
                # prunes an expired reset time
                self.delay(bucket)

    @property
    def bucket_count(self) -> int:
        """Number of buckets currently holding a lock or a pending reset."""
        return len(self._locks.keys() | self._reset_at.keys())

    def delay(self, bucket: BucketId) -> float:
        """Seconds to wait before the bucket accepts another request."""
        reset_at = self._reset_at.get(bucket)
        if reset_at is None:
            return 0.0
        remaining = reset_at - time.time()
        if remaining <= 0:
            self._reset_at.pop(bucket, None)
            return 0.0
        return remaining

    def update(self, bucket: BucketId, headers: Mapping[str, str]) -> None:
        """Record the bucket state reported by a response."""
        normalized = {k.lower(): v for k, v in headers.items()}
        remaining = normalized.get("x-ratelimit-remaining")
        reset_after = normalized.get("x-ratelimit-reset-after")
        if remaining is None or reset_after is None:
            return
        try:
            exhausted = int(remaining) <= 0
            wait = float(reset_after)
        except ValueError:
            return
        if exhausted:
            self._reset_at[bucket] = time.time() + wait
        else:
            self._reset_at.pop(bucket, None)

"""Persistent cache tier.

Wraps a PersistentStore (Redis by default). Lookup keys are the sha256 of
the fingerprint so that prompt content is never used as a storage key.
"""

import asyncio
import hashlib
import logging
from collections.abc import Callable

from pydantic import ValidationError

from narrative_optimizer.entities import PersistentRow
from narrative_optimizer.errors import CacheError
from narrative_optimizer.models import CachedResponse, CacheStats, now_ms
from narrative_optimizer.protocols import PersistentStore

logger = logging.getLogger(__name__)

_MS_PER_HOUR = 60 * 60 * 1000


class PersistentCacheTier:
    """CacheTier implementation over a blocking PersistentStore.

    Store calls run in a worker thread so that the event loop is never
    blocked. Any store failure is raised as ``CacheError``; the composite
    cache decides what to do with it.

    Expired rows read as absent but are only deleted by the sweep that runs
    after each successful write.
    """

    def __init__(
        self,
        store: PersistentStore,
        ttl_hours: float = 24,
        clock: Callable[[], float] | None = None,
        name: str = "persistent",
    ) -> None:
        """Initialize the persistent tier.

        Args:
            store: Row storage backend (required).
            ttl_hours: Default time-to-live in hours.
            clock: Millisecond clock. Defaults to wall-clock time.
            name: Identifier used in logs and stats.
        """
        self._store = store
        self._ttl_ms = int(ttl_hours * _MS_PER_HOUR)
        self._clock = clock or now_ms
        self._name = name
        # Approximate counters; concurrent updates are not synchronized.
        self._hits = 0
        self._misses = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> PersistentStore:
        """Get the underlying store (for testing)."""
        return self._store

    @staticmethod
    def hash_key(key: str) -> str:
        """Hash a fingerprint into a storage key."""
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    async def get(self, key: str) -> CachedResponse | None:
        hashed = self.hash_key(key)
        now = self._clock()

        try:
            row = await asyncio.to_thread(self._store.get, hashed)
        except Exception as e:
            raise CacheError(self._name, "get", str(e)) from e

        if row is None or row.is_expired(now):
            self._misses += 1
            return None

        try:
            value = CachedResponse.model_validate_json(row.payload).model_copy(
                update={"expires_at": row.expires_at}
            )
        except ValidationError as e:
            self._misses += 1
            raise CacheError(self._name, "get", f"corrupt payload for {hashed[:12]}") from e

        self._hits += 1
        try:
            await asyncio.to_thread(self._store.touch, hashed, now)
        except Exception as e:
            logger.debug("Hit-count update failed on %s tier: %s", self._name, e)

        return value

    async def set(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> None:
        hashed = self.hash_key(key)
        now = self._clock()
        ttl = ttl_ms if ttl_ms is not None else self._ttl_ms
        expires_at = now + ttl
        if value.expires_at is not None:
            expires_at = min(expires_at, value.expires_at)

        row = PersistentRow(
            cache_key=hashed,
            payload=value.model_dump_json(exclude={"expires_at"}),
            provider=value.provider,
            quality=value.quality,
            created_at=now,
            expires_at=expires_at,
            last_accessed_at=now,
            hit_count=0,
        )

        try:
            await asyncio.to_thread(self._store.put, row)
        except Exception as e:
            raise CacheError(self._name, "set", str(e)) from e

        try:
            swept = await asyncio.to_thread(self._store.sweep_expired, now)
        except Exception as e:
            logger.warning("Expired-row sweep failed on %s tier: %s", self._name, e)
        else:
            if swept:
                logger.debug("Swept %d expired rows from %s tier", swept, self._name)

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._store.clear)
        except Exception as e:
            raise CacheError(self._name, "clear", str(e)) from e
        self._hits = 0
        self._misses = 0

    async def get_stats(self) -> CacheStats:
        try:
            size = await asyncio.to_thread(self._store.count, self._clock())
        except Exception as e:
            raise CacheError(self._name, "stats", str(e)) from e
        return CacheStats.from_counts(self._hits, self._misses, size)

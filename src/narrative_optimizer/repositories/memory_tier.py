"""In-process LRU cache tier.

The fastest tier of the composite cache. Bounded by ``max_size`` with
strict least-recently-used eviction by ``last_accessed_at``.
"""

import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import replace

from narrative_optimizer.entities import CacheEntryEntity
from narrative_optimizer.models import CachedResponse, CacheStats, now_ms

logger = logging.getLogger(__name__)


class MemoryCacheTier:
    """Dict-backed implementation of the CacheTier protocol.

    Expired entries are deleted on read and counted as misses. An entry's
    ``expires_at`` never moves backwards across successive ``set`` calls.

    Example:
        ```python
        tier = MemoryCacheTier(max_size=100, default_ttl_ms=60_000)
        await tier.set("fp:abc", response)
        cached = await tier.get("fp:abc")
        ```
    """

    def __init__(
        self,
        max_size: int = 100,
        default_ttl_ms: int = 60_000,
        clock: Callable[[], float] | None = None,
        name: str = "memory",
    ) -> None:
        """Initialize the memory tier.

        Args:
            max_size: Maximum number of entries held at once.
            default_ttl_ms: Time-to-live used when ``set`` gets no override.
            clock: Millisecond clock. Defaults to wall-clock time.
            name: Identifier used in logs and stats.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock or now_ms
        self._name = name
        self._entries: OrderedDict[str, CacheEntryEntity] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def name(self) -> str:
        return self._name

    async def get(self, key: str) -> CachedResponse | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            self._misses += 1
            logger.debug("Memory tier purged expired entry %s", key)
            return None

        self._entries[key] = replace(entry, last_accessed_at=now)
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    async def set(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> None:
        now = self._clock()
        ttl = ttl_ms if ttl_ms is not None else self._default_ttl_ms
        expires_at = now + ttl
        if value.expires_at is not None:
            expires_at = min(expires_at, value.expires_at)

        previous = self._entries.get(key)
        if previous is not None and expires_at <= previous.expires_at:
            expires_at = previous.expires_at + 1
        elif previous is None:
            self._evict_if_needed(now)

        self._entries[key] = CacheEntryEntity(
            key=key,
            value=value,
            expires_at=expires_at,
            last_accessed_at=now,
        )
        self._entries.move_to_end(key)

    async def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def get_stats(self) -> CacheStats:
        return CacheStats.from_counts(self._hits, self._misses, len(self._entries))

    def cleanup(self) -> int:
        """Delete every expired entry.

        Returns:
            Number of entries removed
        """
        return self._purge_expired(self._clock())

    def peek(self, key: str) -> CacheEntryEntity | None:
        """Return the raw entry without touching counters or LRU order."""
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def evictions(self) -> int:
        return self._evictions

    def _purge_expired(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _evict_if_needed(self, now: float) -> None:
        if len(self._entries) < self._max_size:
            return

        if self._purge_expired(now) and len(self._entries) < self._max_size:
            return

        oldest = min(self._entries.values(), key=lambda entry: entry.last_accessed_at)
        del self._entries[oldest.key]
        self._evictions += 1
        logger.debug("Memory tier evicted LRU entry %s", oldest.key)

"""Multi-tier cache orchestration.

Reads walk the tiers fastest first and stop at the first hit; a hit in a
slower tier is copied into every faster tier before returning. Writes fan
out to all tiers concurrently, each bounded by a tier-local timeout.

A failing tier is logged and treated as absent. Tier errors never reach
the caller.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from narrative_optimizer.config import CacheConfig, settings
from narrative_optimizer.errors import ConfigError
from narrative_optimizer.models import CachedResponse, CacheStats
from narrative_optimizer.protocols import CacheTier, PersistentStore
from narrative_optimizer.repositories import (
    InMemoryPersistentStore,
    MemoryCacheTier,
    PersistentCacheTier,
    RedisPersistentStore,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheLookup:
    """Result of a composite read.

    Attributes:
        value: The cached response, or None on a miss
        tier_index: Index of the tier that served the hit
        degraded: True when at least one tier failed during the read
    """

    value: CachedResponse | None = None
    tier_index: int | None = None
    degraded: bool = False

    @property
    def hit(self) -> bool:
        return self.value is not None


class CompositeCache:
    """Ordered collection of cache tiers.

    Example:
        ```python
        cache = CompositeCache([MemoryCacheTier(), PersistentCacheTier(store)])
        await cache.set(key, response)
        result = await cache.lookup(key)
        ```
    """

    def __init__(self, tiers: Sequence[CacheTier], tier_timeout_ms: int = 250) -> None:
        """Initialize the composite cache.

        Args:
            tiers: Tiers in fastest-first order. May be empty (caching off).
            tier_timeout_ms: Upper bound for a single tier write.
        """
        self._tiers = tuple(tiers)
        self._timeout_s = tier_timeout_ms / 1000

    @property
    def tiers(self) -> tuple[CacheTier, ...]:
        return self._tiers

    @property
    def enabled(self) -> bool:
        return bool(self._tiers)

    async def get(self, key: str) -> CachedResponse | None:
        return (await self.lookup(key)).value

    async def lookup(self, key: str) -> CacheLookup:
        degraded = False
        for index, tier in enumerate(self._tiers):
            try:
                value = await tier.get(key)
            except Exception as e:
                logger.warning("Cache tier %s read failed, skipping: %s", tier.name, e)
                degraded = True
                continue

            if value is not None:
                logger.debug("Cache hit in tier %s", tier.name)
                if index > 0:
                    failed = await self.propagate_to_faster_tiers(key, value, index)
                    degraded = degraded or bool(failed)
                return CacheLookup(value=value, tier_index=index, degraded=degraded)

        return CacheLookup(degraded=degraded)

    async def propagate_to_faster_tiers(
        self, key: str, value: CachedResponse, source_index: int
    ) -> list[str]:
        """Copy a hit from tier ``source_index`` into every faster tier.

        Each copy uses the faster tier's default TTL, capped by
        ``value.expires_at`` when the source tier set it.

        Returns:
            Names of the tiers that failed to accept the value
        """
        return await self._write_tiers(self._tiers[:source_index], key, value, None)

    async def set(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> None:
        await self.write(key, value, ttl_ms)

    async def write(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> list[str]:
        """Write to all tiers concurrently.

        Returns:
            Names of the tiers that failed or timed out
        """
        return await self._write_tiers(self._tiers, key, value, ttl_ms)

    async def clear(self) -> None:
        for tier in self._tiers:
            try:
                await tier.clear()
            except Exception as e:
                logger.warning("Cache tier %s clear failed: %s", tier.name, e)

    async def tier_stats(self) -> dict[str, CacheStats]:
        stats = {}
        for tier in self._tiers:
            try:
                stats[tier.name] = await tier.get_stats()
            except Exception as e:
                logger.warning("Cache tier %s stats unavailable: %s", tier.name, e)
        return stats

    async def get_stats(self) -> CacheStats:
        """Summed counters over all reachable tiers, hit rate recomputed."""
        per_tier = (await self.tier_stats()).values()
        return CacheStats.from_counts(
            hits=sum(s.hits for s in per_tier),
            misses=sum(s.misses for s in per_tier),
            size=sum(s.size for s in per_tier),
        )

    async def _write_tiers(
        self,
        tiers: Sequence[CacheTier],
        key: str,
        value: CachedResponse,
        ttl_ms: int | None,
    ) -> list[str]:
        async def write_one(tier: CacheTier) -> str | None:
            try:
                await asyncio.wait_for(tier.set(key, value, ttl_ms), timeout=self._timeout_s)
            except asyncio.TimeoutError:
                logger.warning(
                    "Cache tier %s write timed out after %.0f ms", tier.name, self._timeout_s * 1000
                )
                return tier.name
            except Exception as e:
                logger.warning("Cache tier %s write failed: %s", tier.name, e)
                return tier.name
            return None

        results = await asyncio.gather(*(write_one(tier) for tier in tiers))
        return [name for name in results if name is not None]


def create_cache(
    config: CacheConfig,
    store: PersistentStore | None = None,
    backend: str | None = None,
    clock: Callable[[], float] | None = None,
) -> CompositeCache:
    """Build the tier list from configuration.

    Args:
        config: Cache section of the optimization config.
        store: Persistent store to use. If None, built from ``backend``.
        backend: ``redis``, ``memory`` or ``none``. If None, uses settings.
        clock: Millisecond clock shared by all tiers.

    Returns:
        CompositeCache, with no tiers when caching is disabled

    Raises:
        ConfigError: If caching is enabled but no tier can be built.
    """
    if not config.enabled:
        return CompositeCache([], config.tier_timeout_ms)

    tiers: list[CacheTier] = []
    if config.memory_enabled:
        tiers.append(
            MemoryCacheTier(
                max_size=config.max_memory_size,
                default_ttl_ms=config.memory_ttl_ms,
                clock=clock,
            )
        )

    if config.persistent_enabled:
        if store is None:
            store = _build_store(backend or settings.cache_persistent_backend)
        if store is not None:
            tiers.append(PersistentCacheTier(store, ttl_hours=config.db_ttl_hours, clock=clock))

    if not tiers:
        raise ConfigError("Caching is enabled but no cache backend is enabled")

    return CompositeCache(tiers, config.tier_timeout_ms)


def _build_store(backend: str) -> PersistentStore | None:
    if backend == "redis":
        return RedisPersistentStore.create()
    if backend == "memory":
        return InMemoryPersistentStore()
    if backend == "none":
        return None
    raise ConfigError(f"Unknown persistent backend {backend!r}")

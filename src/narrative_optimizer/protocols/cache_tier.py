"""Cache tier protocol.

Defines the interface every tier of the composite cache satisfies.

Implementations include:
- In-process LRU memory tier (fastest)
- Persistent tier over Redis or any other PersistentStore
"""

from typing import Protocol, runtime_checkable

from narrative_optimizer.models import CachedResponse, CacheStats


@runtime_checkable
class CacheTier(Protocol):
    """Protocol for a single cache tier.

    Tiers are dumb key/value stores with TTL and hit/miss accounting; they
    apply no quality policy of their own.

    Example:
        ```python
        from narrative_optimizer.protocols import CacheTier

        tier: CacheTier = MemoryCacheTier(max_size=100, default_ttl_ms=60_000)
        tier: CacheTier = PersistentCacheTier(store=RedisPersistentStore.create())
        ```
    """

    @property
    def name(self) -> str:
        """Short identifier used in logs and stats."""
        ...

    async def get(self, key: str) -> CachedResponse | None:
        """Return the cached value, or None when absent or expired.

        Args:
            key: Fingerprint-derived cache key

        Returns:
            The cached response or None
        """
        ...

    async def set(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> None:
        """Store a value.

        Args:
            key: Fingerprint-derived cache key
            value: The response to cache
            ttl_ms: Override of the tier's default time-to-live in milliseconds
        """
        ...

    async def clear(self) -> None:
        """Remove every entry and reset counters."""
        ...

    async def get_stats(self) -> CacheStats:
        """Return hit/miss counters and current size."""
        ...

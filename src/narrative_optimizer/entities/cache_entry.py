"""Cache entry domain entities."""

from dataclasses import dataclass

from narrative_optimizer.models import CachedResponse


@dataclass(frozen=True)
class CacheEntryEntity:
    """An entry held by the memory tier.

    Attributes:
        key: Opaque key derived from the request fingerprint
        value: The cached response
        expires_at: Expiry time in milliseconds
        last_accessed_at: Last read or write time in milliseconds (drives LRU)
    """

    key: str
    value: CachedResponse
    expires_at: float
    last_accessed_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class PersistentRow:
    """A row as stored by a persistent store.

    ``cache_key`` is always the hash of the fingerprint, never the
    fingerprint itself.

    Attributes:
        cache_key: sha256 hex digest of the fingerprint
        payload: JSON-serialized CachedResponse
        provider: Provider that produced the response
        quality: Quality score recorded at write time
        created_at: Creation time in milliseconds
        expires_at: Expiry time in milliseconds
        last_accessed_at: Last read time in milliseconds
        hit_count: Approximate number of reads served
    """

    cache_key: str
    payload: str
    provider: str
    quality: float
    created_at: float
    expires_at: float
    last_accessed_at: float
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

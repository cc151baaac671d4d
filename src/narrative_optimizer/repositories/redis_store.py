"""Redis implementation of PersistentStore.

Each row is a Redis hash under ``{prefix}:row:{hashed_key}``. A sorted set
``{prefix}:expiry`` scores every row key by its expiry time so that sweeps
and live counts never need a keyspace scan.
"""

import logging

import redis

from narrative_optimizer.config import get_redis_client, settings
from narrative_optimizer.entities import PersistentRow

logger = logging.getLogger(__name__)

# Rows outlive their logical expiry briefly so the sweep can remove them
# from the index before Redis drops the hash.
_NATIVE_EXPIRY_GRACE_MS = 60_000


def _text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisPersistentStore:
    """Redis implementation of the PersistentStore protocol.

    This class satisfies the protocol through structural typing; no
    explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            key_prefix: Namespace for all keys. If None, uses settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or settings.cache_key_prefix
        self._index_key = f"{self._prefix}:expiry"

    @classmethod
    def create(cls, key_prefix: str | None = None) -> "RedisPersistentStore":
        """Factory method to create RedisPersistentStore with defaults.

        Args:
            key_prefix: Redis key namespace. If None, uses settings.

        Returns:
            Configured RedisPersistentStore
        """
        return cls(key_prefix=key_prefix)

    def _row_key(self, hashed_key: str) -> str:
        return f"{self._prefix}:row:{hashed_key}"

    def get(self, hashed_key: str) -> PersistentRow | None:
        data = self._client.hgetall(self._row_key(hashed_key))
        if not data:
            return None

        fields = {_text(k): _text(v) for k, v in data.items()}  # type: ignore[union-attr]
        return PersistentRow(
            cache_key=hashed_key,
            payload=fields["payload"],
            provider=fields.get("provider", ""),
            quality=float(fields.get("quality", 0)),
            created_at=float(fields.get("created_at", 0)),
            expires_at=float(fields["expires_at"]),
            last_accessed_at=float(fields.get("last_accessed_at", 0)),
            hit_count=int(fields.get("hit_count", 0)),
        )

    def put(self, row: PersistentRow) -> None:
        key = self._row_key(row.cache_key)

        pipe = self._client.pipeline()
        pipe.delete(key)
        pipe.hset(
            key,
            mapping={
                "payload": row.payload,
                "provider": row.provider,
                "quality": str(row.quality),
                "created_at": str(row.created_at),
                "expires_at": str(row.expires_at),
                "last_accessed_at": str(row.last_accessed_at),
                "hit_count": str(row.hit_count),
            },
        )
        pipe.pexpireat(key, int(row.expires_at) + _NATIVE_EXPIRY_GRACE_MS)
        pipe.zadd(self._index_key, {row.cache_key: row.expires_at})
        pipe.execute()

    def touch(self, hashed_key: str, now_ms: float) -> None:
        key = self._row_key(hashed_key)
        if not self._client.exists(key):
            return

        pipe = self._client.pipeline()
        pipe.hincrby(key, "hit_count", 1)
        pipe.hset(key, "last_accessed_at", str(now_ms))
        pipe.execute()

    def sweep_expired(self, now_ms: float) -> int:
        expired = self._client.zrangebyscore(self._index_key, "-inf", now_ms)
        if not expired:
            return 0

        hashed_keys = [_text(k) for k in expired]  # type: ignore[union-attr]
        pipe = self._client.pipeline()
        pipe.delete(*(self._row_key(k) for k in hashed_keys))
        pipe.zrem(self._index_key, *hashed_keys)
        pipe.execute()
        return len(hashed_keys)

    def clear(self) -> int:
        count: int = self._client.zcard(self._index_key)  # type: ignore[assignment]

        keys = list(self._client.scan_iter(match=f"{self._prefix}:*"))
        if keys:
            self._client.delete(*keys)

        logger.info("Cleared %d rows under prefix %s", count, self._prefix)
        return count

    def count(self, now_ms: float) -> int:
        result: int = self._client.zcount(self._index_key, f"({now_ms}", "+inf")  # type: ignore[assignment]
        return result

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            result = self._client.ping()
            return bool(result)
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client

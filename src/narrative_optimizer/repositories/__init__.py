"""Repository implementations.

Cache tiers and the persistent stores behind them. Each class satisfies
its protocol through structural typing.
"""

from .in_memory_store import InMemoryPersistentStore
from .memory_tier import MemoryCacheTier
from .persistent_tier import PersistentCacheTier
from .redis_store import RedisPersistentStore

__all__ = [
    "InMemoryPersistentStore",
    "MemoryCacheTier",
    "PersistentCacheTier",
    "RedisPersistentStore",
]

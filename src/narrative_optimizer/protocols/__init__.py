"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis -> another database, etc.)
- Unit testing with fake implementations
- Clear separation of concerns
"""

from .cache_tier import CacheTier
from .persistent_store import PersistentStore
from .text_provider import TextProvider

__all__ = [
    "CacheTier",
    "PersistentStore",
    "TextProvider",
]

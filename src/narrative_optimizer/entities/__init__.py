"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntryEntity, PersistentRow
from .choice import Choice, ChoiceOption, LimitedChoices
from .compression import CompressedPrompt, QualityMetrics, QualityScore

__all__ = [
    "CacheEntryEntity",
    "PersistentRow",
    "Choice",
    "ChoiceOption",
    "LimitedChoices",
    "CompressedPrompt",
    "QualityMetrics",
    "QualityScore",
]

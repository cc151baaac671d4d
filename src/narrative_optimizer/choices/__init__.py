"""Choice extraction, scoring, validation and limiting."""

from .matchers import MATCHERS, NO_MATCH, Matched
from .processor import (
    DEFAULT_OPTIONS,
    FILLER_TEXT,
    ChoiceProcessor,
    ProcessedChoices,
    default_choice_set,
)
from .prompt_builder import StructuredPromptBuilder
from .scorer import ChoiceScorer
from .validator import ChoiceValidator

__all__ = [
    "MATCHERS",
    "NO_MATCH",
    "Matched",
    "DEFAULT_OPTIONS",
    "FILLER_TEXT",
    "ChoiceProcessor",
    "ProcessedChoices",
    "default_choice_set",
    "StructuredPromptBuilder",
    "ChoiceScorer",
    "ChoiceValidator",
]

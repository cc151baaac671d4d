"""Choice extraction, ranking and limiting."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from narrative_optimizer.config import ChoiceConfig
from narrative_optimizer.entities import Choice, ChoiceOption, LimitedChoices
from narrative_optimizer.models import ProviderResult

from .matchers import MATCHERS, Matched, Matcher
from .scorer import ChoiceScorer
from .validator import ChoiceValidator

logger = logging.getLogger(__name__)

FILLER_TEXT = "Consider more carefully"
FILLER_DESCRIPTION = "Take a moment to weigh the situation before acting"

DEFAULT_OPTIONS = (
    ("Look around carefully", "Search this place for anything unusual"),
    ("Talk with the people nearby", "Hear new information or a story"),
    ("Spend some quiet time alone", "Take a personal moment here"),
)

MIN_OPTION_TEXT = 2


class Scorer(Protocol):
    def score_option(self, option: ChoiceOption) -> float: ...

    def score_choice(self, choice: Choice) -> float: ...


def default_choice_set(location: str | None = None) -> list[Choice]:
    """Fixed three-option choice used when nothing usable was extracted."""
    options = tuple(
        ChoiceOption(id=f"default-{i}", text=text, description=description)
        for i, (text, description) in enumerate(DEFAULT_OPTIONS)
    )
    return [
        Choice(
            id="default",
            question=f"What will you do at {location or 'this place'}?",
            options=options,
            location=location or "",
        )
    ]


@dataclass(frozen=True)
class ProcessedChoices:
    """Outcome of running a provider response through the processor.

    Attributes:
        removed_count: Usable choices dropped by limiting
        discarded_count: Parsed choices dropped for having fewer than two usable options
        valid: Result of ``validate_choices`` on the final choices
    """

    choices: list[Choice] = field(default_factory=list)
    limited: bool = False
    defaulted: bool = False
    removed_count: int = 0
    discarded_count: int = 0
    valid: bool = True
    quality: float = 1.0


class ChoiceProcessor:
    """Turns raw provider output into a bounded list of usable choices.

    Example:
        ```python
        processor = ChoiceProcessor(ChoiceConfig(max_choices=3))
        choices = processor.extract_choices(result.content)
        limited = processor.limit_choices(choices, 3)
        ```
    """

    def __init__(
        self,
        config: ChoiceConfig | None = None,
        scorer: Scorer | None = None,
        validator: ChoiceValidator | None = None,
        matchers: tuple[Matcher, ...] = MATCHERS,
    ) -> None:
        self._config = config or ChoiceConfig()
        self._scorer = scorer or ChoiceScorer()
        self._validator = validator or ChoiceValidator()
        self._matchers = matchers

    @property
    def config(self) -> ChoiceConfig:
        return self._config

    def extract_choices(self, raw: Any) -> list[Choice]:
        """Extract usable choices.

        Args:
            raw: A list of choice mappings, free-form text, a ProviderResult
                or a mapping with ``choices``/``content`` keys.

        Returns:
            Usable choices; empty when nothing usable was found
        """
        return self._extract(raw)[0]

    def _extract(self, raw: Any) -> tuple[list[Choice], int]:
        """Usable choices plus the number of parsed choices that were discarded."""
        if isinstance(raw, ProviderResult):
            return self._extract_with_fallback(raw.raw_choices, raw.content)

        if isinstance(raw, dict):
            return self._extract_with_fallback(raw.get("choices"), raw.get("content") or "")

        if isinstance(raw, list):
            return self._usable(self._coerce(raw))

        if isinstance(raw, str) and raw.strip():
            for matcher in self._matchers:
                result = matcher(raw)
                if isinstance(result, Matched):
                    usable, discarded = self._usable(list(result.choices))
                    if usable:
                        logger.debug("Choices extracted by %s", matcher.__name__)
                        return usable, discarded

        return [], 0

    def _extract_with_fallback(self, structured: Any, content: str) -> tuple[list[Choice], int]:
        choices, discarded = self._extract(structured) if structured else ([], 0)
        if choices:
            return choices, discarded
        choices, content_discarded = self._extract(content)
        return choices, discarded + content_discarded

    def limit_choices(self, choices: list[Choice], max_choices: int) -> LimitedChoices:
        """Keep the ``max_choices`` best-scoring choices.

        Ranking is stable, so equal scores keep their input order.
        """
        if len(choices) <= max_choices:
            return LimitedChoices(
                original_count=len(choices),
                limited_count=len(choices),
                choices=list(choices),
                removed=[],
                quality=1.0,
            )

        scores = [self._scorer.score_choice(choice) for choice in choices]
        ranked = sorted(range(len(choices)), key=lambda i: scores[i], reverse=True)
        kept, removed = ranked[:max_choices], ranked[max_choices:]

        average_all = sum(scores) / len(scores)
        average_kept = sum(scores[i] for i in kept) / len(kept)
        quality = average_kept / average_all if average_all > 0 else 1.0

        return LimitedChoices(
            original_count=len(choices),
            limited_count=len(kept),
            choices=[choices[i] for i in kept],
            removed=[choices[i] for i in removed],
            quality=quality,
        )

    def limit_options(self, choice: Choice, max_options: int) -> tuple[Choice, bool]:
        """Keep the best ``max_options`` options, in their original order."""
        if len(choice.options) <= max_options:
            return choice, False

        scores = [self._scorer.score_option(option) for option in choice.options]
        ranked = sorted(range(len(scores)), key=lambda i: scores[i], reverse=True)
        kept = sorted(ranked[:max_options])
        return replace(choice, options=tuple(choice.options[i] for i in kept)), True

    def validate_choices(self, choices: list[Choice]) -> bool:
        return self._validator.validate_choices(choices)

    def process(self, raw: Any, location: str | None = None) -> ProcessedChoices:
        """Extract, default, limit and validate choices per the configuration."""
        choices, discarded = self._extract(raw)
        if discarded:
            logger.info("Discarded %d choice(s) with fewer than two usable options", discarded)
        if not self._config.enabled:
            return ProcessedChoices(
                choices=choices,
                discarded_count=discarded,
                valid=self.validate_choices(choices),
            )

        defaulted = not choices
        if defaulted:
            logger.info("No usable choices in provider response, using default set")
            choices = default_choice_set(location)

        if not self._config.enforce_limit:
            return ProcessedChoices(
                choices=choices,
                defaulted=defaulted,
                discarded_count=discarded,
                valid=self.validate_choices(choices),
            )

        limited = self.limit_choices(choices, self._config.max_choices)
        was_limited = limited.was_limited

        bounded = []
        for choice in limited.choices:
            trimmed, changed = self.limit_options(choice, self._config.options_per_choice)
            was_limited = was_limited or changed
            bounded.append(trimmed)

        return ProcessedChoices(
            choices=bounded,
            limited=was_limited,
            defaulted=defaulted,
            removed_count=len(limited.removed),
            discarded_count=discarded,
            valid=self.validate_choices(bounded),
            quality=limited.quality,
        )

    def _coerce(self, items: list[Any]) -> list[Choice]:
        """Structured payloads: a list of choices, or a flat list of options."""
        if items and all(isinstance(item, dict) and "options" in item for item in items):
            return [Choice.from_dict(item, index) for index, item in enumerate(items)]

        options = [item for item in items if isinstance(item, (str, dict))]
        if not options:
            return []
        return [Choice.from_dict({"id": "choice-0", "options": options})]

    def _usable(self, choices: list[Choice]) -> tuple[list[Choice], int]:
        usable = []
        for choice in choices:
            options = tuple(o for o in choice.options if len(o.content.strip()) >= MIN_OPTION_TEXT)
            if (
                len(options) == 2
                and self._config.options_per_choice == 3
                and self._config.pad_two_option_choices
            ):
                options += (
                    ChoiceOption(
                        id=f"{choice.id}-filler",
                        text=FILLER_TEXT,
                        description=FILLER_DESCRIPTION,
                    ),
                )
            if len(options) < 2:
                logger.debug("Discarding choice %s with %d options", choice.id, len(options))
                continue
            usable.append(replace(choice, options=options))
        return usable, len(choices) - len(usable)

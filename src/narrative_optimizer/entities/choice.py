"""Choice domain entities."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ChoiceOption:
    """One branching option the reader can pick."""

    id: str
    text: str
    description: str = ""

    @property
    def content(self) -> str:
        """Text used for scoring and validation."""
        return self.text or self.description

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "text": self.text, "description": self.description}


@dataclass(frozen=True)
class Choice:
    """A question at a story location together with its options.

    A choice is only valid with at least two options.
    """

    id: str
    question: str
    options: tuple[ChoiceOption, ...] = ()
    location: str = ""

    @property
    def is_valid(self) -> bool:
        return len(self.options) >= 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "location": self.location,
            "question": self.question,
            "options": [option.to_dict() for option in self.options],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "Choice":
        """Build a choice from a provider's structured payload.

        Accepts ``options`` as a list of mappings or plain strings. A bare
        string or mapping is a single option.
        """
        choice_id = str(data.get("id") or f"choice-{index}")
        raw_options = data.get("options") or []
        if isinstance(raw_options, (str, dict)):
            raw_options = [raw_options]

        options = []
        for opt_index, raw in enumerate(raw_options):
            if isinstance(raw, str):
                options.append(ChoiceOption(id=f"{choice_id}-{opt_index}", text=raw.strip()))
            elif isinstance(raw, dict):
                text = str(raw.get("text") or raw.get("content") or "").strip()
                options.append(
                    ChoiceOption(
                        id=str(raw.get("id") or f"{choice_id}-{opt_index}"),
                        text=text,
                        description=str(raw.get("description") or "").strip(),
                    )
                )
        return cls(
            id=choice_id,
            question=str(data.get("question") or "").strip(),
            options=tuple(options),
            location=str(data.get("location") or "").strip(),
        )


@dataclass(frozen=True)
class LimitedChoices:
    """Result of ranking and truncating choices.

    Attributes:
        original_count: Number of choices before limiting
        limited_count: Number of choices kept
        choices: Kept choices, best first
        removed: Discarded choices, best first
        quality: Average score of kept divided by average score of all
    """

    original_count: int
    limited_count: int
    choices: list[Choice] = field(default_factory=list)
    removed: list[Choice] = field(default_factory=list)
    quality: float = 1.0

    @property
    def was_limited(self) -> bool:
        return self.limited_count < self.original_count

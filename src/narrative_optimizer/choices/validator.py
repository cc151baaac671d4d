"""Choice validation: per-option quality checks and set diversity."""

import re

from narrative_optimizer.entities import Choice, ChoiceOption

MIN_OPTION_LENGTH = 10
MAX_OPTION_LENGTH = 500
MIN_WORDS = 5
REQUIRED_CHECKS = 3
MAX_SIMILARITY = 0.8

INAPPROPRIATE_KEYWORDS = (
    "폭력", "살인", "자살", "혐오", "차별", "음란", "도박", "마약",
    "murder", "suicide", "gore", "porn", "gambling", "narcotics",
)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]")
_LONG_REPEAT_RE = re.compile(r"(.{10,})\1")
_ODD_CHARACTER_RE = re.compile(r"[^\w\s.,!?'\"()\-]")


def jaccard(first: str, second: str) -> float:
    words1 = set(first.split())
    words2 = set(second.split())
    union = words1 | words2
    if not union:
        return 1.0
    return len(words1 & words2) / len(union)


class ChoiceValidator:
    def validate_choices(self, choices: list[Choice]) -> bool:
        """True when every choice is complete, well written and diverse."""
        if not choices:
            return False
        return all(self.validate_choice(choice) for choice in choices)

    def validate_choice(self, choice: Choice) -> bool:
        if not choice.is_valid:
            return False
        if not all(self.validate_option(option) for option in choice.options):
            return False
        return self.validate_diversity(list(choice.options))

    def validate_option(self, option: ChoiceOption) -> bool:
        """Length bounds plus at least 3 of 4 quality checks."""
        content = option.content
        if len(content.strip()) < MIN_OPTION_LENGTH or len(content) > MAX_OPTION_LENGTH:
            return False

        checks = (
            self._has_minimum_words(content),
            self._has_proper_structure(content),
            self._has_no_inappropriate_content(content),
            self._is_coherent(content),
        )
        return sum(checks) >= REQUIRED_CHECKS

    def validate_diversity(self, options: list[ChoiceOption]) -> bool:
        """Reject exact duplicates and near-duplicates (token Jaccard > 0.8)."""
        if len(options) <= 1:
            return True

        contents = [option.content.lower() for option in options]
        if len(set(contents)) != len(contents):
            return False

        for i in range(len(contents)):
            for j in range(i + 1, len(contents)):
                if jaccard(contents[i], contents[j]) > MAX_SIMILARITY:
                    return False
        return True

    def _has_minimum_words(self, content: str) -> bool:
        return len(content.split()) >= MIN_WORDS

    def _has_proper_structure(self, content: str) -> bool:
        sentences = [s for s in _SENTENCE_SPLIT_RE.split(content) if s.strip()]
        return bool(sentences) and all(len(s.strip()) > 3 for s in sentences)

    def _has_no_inappropriate_content(self, content: str) -> bool:
        lowered = content.lower()
        return not any(keyword in lowered for keyword in INAPPROPRIATE_KEYWORDS)

    def _is_coherent(self, content: str) -> bool:
        stripped = content.strip()
        if len(stripped) <= 5:
            return False
        if _ODD_CHARACTER_RE.search(stripped):
            return False
        return _LONG_REPEAT_RE.search(stripped) is None

"""Heuristic option quality scoring.

``score = 0.3 * length + 0.3 * specificity + 0.2 * tension + 0.2 * coherence``

This weighting scores a single branching option. It is deliberately
separate from the compression fidelity weighting in
``compression.quality_validator``.
"""

import re

from narrative_optimizer.entities import Choice, ChoiceOption

LENGTH_WEIGHT = 0.3
SPECIFICITY_WEIGHT = 0.3
TENSION_WEIGHT = 0.2
COHERENCE_WEIGHT = 0.2

IDEAL_MIN_LENGTH = 50
IDEAL_MAX_LENGTH = 200
LENGTH_DECAY_SPAN = 300

_SPECIFICITY_PATTERNS = (
    re.compile(r"\d+"),
    re.compile(
        r"\b(?:talk|speak|ask|go|walk|run|look|search|find|meet|fight|flee|escape|follow"
        r"|open|climb|hide|enter|explore|call|take|give|investigate|confront|visit)\w*\b"
        r"|말하|가다|가보|둘러보|찾|만나|싸우|도망",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:door|key|map|letter|sword|book|phone|window|stairs|bridge|box|light|gate"
        r"|road|street|station|cafe|shop|river|forest|car|train|photo|note)s?\b"
        r"|[가-힣]{2,}(?:으로|에게|에서|를|을)",
        re.IGNORECASE,
    ),
)

TENSION_KEYWORDS = (
    "danger", "risk", "secret", "hide", "betray", "choice", "dilemma", "conflict",
    "confront", "challenge", "test", "decide", "give up", "sacrifice", "threat",
    "chase", "mystery", "stranger",
    "위험", "모험", "비밀", "숨기다", "배신", "선택", "딜레마",
    "갈등", "대립", "도전", "시험", "결정", "포기", "희생",
)

_REPEATED_RE = re.compile(r"(.{5,})\1")
_ANOMALOUS_RE = re.compile(r"[^\w\s.,!?'\"()\-:;]")
MIN_COHERENT_LENGTH = 10


def length_score(content: str) -> float:
    """1.0 inside the 50-200 character band, lower outside it."""
    length = len(content)
    if IDEAL_MIN_LENGTH <= length <= IDEAL_MAX_LENGTH:
        return 1.0
    if length < IDEAL_MIN_LENGTH:
        return 0.5 * length / IDEAL_MIN_LENGTH
    return max(0.0, 1 - (length - IDEAL_MAX_LENGTH) / LENGTH_DECAY_SPAN)


def specificity_score(content: str) -> float:
    """Fraction of signals present: numerals, action verbs, concrete objects."""
    return sum(1 for p in _SPECIFICITY_PATTERNS if p.search(content)) / len(_SPECIFICITY_PATTERNS)


def tension_score(content: str) -> float:
    lowered = content.lower()
    return 1.0 if any(keyword in lowered for keyword in TENSION_KEYWORDS) else 0.0


def is_coherent(content: str) -> bool:
    stripped = content.strip()
    if len(stripped) <= MIN_COHERENT_LENGTH:
        return False
    if _ANOMALOUS_RE.search(stripped):
        return False
    return _REPEATED_RE.search(stripped[:500]) is None


class ChoiceScorer:
    """Scores options and choices in [0, 1]."""

    def score_option(self, option: ChoiceOption) -> float:
        content = option.content
        if not content.strip():
            return 0.0

        score = (
            LENGTH_WEIGHT * length_score(content)
            + SPECIFICITY_WEIGHT * specificity_score(content)
            + TENSION_WEIGHT * tension_score(content)
            + COHERENCE_WEIGHT * (1.0 if is_coherent(content) else 0.0)
        )
        return min(1.0, score)

    def score_choice(self, choice: Choice) -> float:
        """Mean option score; 0 for a choice without options."""
        if not choice.options:
            return 0.0
        return sum(self.score_option(o) for o in choice.options) / len(choice.options)

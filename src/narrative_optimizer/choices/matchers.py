"""Pure matcher functions that pull choices out of free-form provider text.

Each matcher takes the raw text and returns ``Matched(choices)`` or
``NO_MATCH``. ``MATCHERS`` lists them from most to least structured; the
ChoiceProcessor tries them in that order.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from narrative_optimizer.entities import Choice, ChoiceOption


@dataclass(frozen=True)
class Matched:
    choices: tuple[Choice, ...]


class NoMatch(Enum):
    NO_MATCH = "no_match"


NO_MATCH = NoMatch.NO_MATCH

MatchResult = Matched | NoMatch
Matcher = Callable[[str], MatchResult]

_CHOICES_MARKER_RE = re.compile(
    r"\*\*\s*(?:choices|options|선택지)\s*:?\s*\*\*\s*:?", re.IGNORECASE
)
_QUESTION_LINE_RE = re.compile(r"^\s*(?:question|situation|질문|상황)\s*:\s*(.+)$", re.IGNORECASE)
_BLOCK_HEADER_RE = re.compile(r"^(?!\s*\d+[.)])\s*(.+?)\s+-\s+(.+)$")
_OPTION_LINE_RE = re.compile(r"^\s*\d+\)\s*(.+)$")
_NUMBERED_LINE_RE = re.compile(
    r"^\s*\d+[.)]\s*(?:(?:choice|option|선택지)\s*\d*\s*:\s*)?(.+)$", re.IGNORECASE
)
_BULLET_LINE_RE = re.compile(r"^\s*[-•*]\s+(.+)$")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_OPTION_SEPARATOR = re.compile(r"\s+-\s+")

MIN_PARAGRAPH_LENGTH = 10


def _option(choice_id: str, index: int, body: str) -> ChoiceOption:
    """Split ``text - description`` into an option."""
    parts = _OPTION_SEPARATOR.split(body.strip(), maxsplit=1)
    text = parts[0].strip()
    description = parts[1].strip() if len(parts) > 1 else text
    return ChoiceOption(id=f"{choice_id}-{index}", text=text, description=description)


def _preceding_question(lines: list[str], first_item: int) -> str:
    for line in reversed(lines[:first_item]):
        stripped = line.strip().strip("*").strip()
        if stripped.endswith("?"):
            return stripped
    return ""


def _single_choice(bodies: list[str], question: str) -> MatchResult:
    if not bodies:
        return NO_MATCH
    options = tuple(_option("choice-0", i, body) for i, body in enumerate(bodies))
    return Matched((Choice(id="choice-0", question=question, options=options),))


def match_markdown_blocks(text: str) -> MatchResult:
    """``**Choices:**`` section of ``Location - Question`` headers and ``N) option`` lines."""
    marker = _CHOICES_MARKER_RE.search(text)
    if marker is None:
        return NO_MATCH

    choices: list[Choice] = []
    location = question = ""
    bodies: list[str] = []

    def flush() -> None:
        if bodies:
            choice_id = f"choice-{len(choices)}"
            options = tuple(_option(choice_id, i, body) for i, body in enumerate(bodies))
            choices.append(
                Choice(id=choice_id, question=question, options=options, location=location)
            )

    for line in text[marker.end():].splitlines():
        if not line.strip():
            continue
        option = _OPTION_LINE_RE.match(line)
        if option:
            bodies.append(option.group(1))
            continue
        header = _BLOCK_HEADER_RE.match(line)
        if header:
            flush()
            location, question = header.group(1).strip(), header.group(2).strip()
            bodies = []

    flush()
    return Matched(tuple(choices)) if choices else NO_MATCH


def match_question_block(text: str) -> MatchResult:
    """``Question: ...`` line followed by ``N) option`` lines."""
    question = ""
    bodies: list[str] = []
    for line in text.splitlines():
        header = _QUESTION_LINE_RE.match(line)
        if header and not bodies:
            question = header.group(1).strip()
            continue
        option = _OPTION_LINE_RE.match(line)
        if option and question:
            bodies.append(option.group(1))

    return _single_choice(bodies, question)


def match_numbered_list(text: str) -> MatchResult:
    lines = text.splitlines()
    bodies: list[str] = []
    first_item = -1
    for i, line in enumerate(lines):
        match = _NUMBERED_LINE_RE.match(line)
        if match:
            if first_item < 0:
                first_item = i
            bodies.append(match.group(1))

    return _single_choice(bodies, _preceding_question(lines, first_item) if bodies else "")


def match_bulleted_list(text: str) -> MatchResult:
    lines = text.splitlines()
    bodies: list[str] = []
    first_item = -1
    for i, line in enumerate(lines):
        match = _BULLET_LINE_RE.match(line)
        if match:
            if first_item < 0:
                first_item = i
            bodies.append(match.group(1))

    return _single_choice(bodies, _preceding_question(lines, first_item) if bodies else "")


def match_paragraphs(text: str) -> MatchResult:
    paragraphs = [
        p.strip() for p in _PARAGRAPH_SPLIT_RE.split(text) if len(p.strip()) > MIN_PARAGRAPH_LENGTH
    ]
    if len(paragraphs) < 2:
        return NO_MATCH

    options = tuple(
        ChoiceOption(id=f"choice-0-{i}", text=p, description="") for i, p in enumerate(paragraphs)
    )
    return Matched((Choice(id="choice-0", question="", options=options),))


MATCHERS: tuple[Matcher, ...] = (
    match_markdown_blocks,
    match_question_block,
    match_numbered_list,
    match_bulleted_list,
    match_paragraphs,
)

"""Canonical request fingerprints.

The fingerprint ignores volatile text (timestamps, generated ids) but
changes with anything that could change the output: prompt wording and
whether it is compressed, prior choices, preferences, location, provider,
choice limits and the caller's context.
"""

import hashlib
import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from narrative_optimizer.models import PriorChoice, StoryPreferences

PRIOR_CHOICE_CHARS = 48

_VOLATILE_PATTERNS = (
    (
        re.compile(
            r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?"
        ),
        "<ts>",
    ),
    (
        re.compile(
            r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE
        ),
        "<id>",
    ),
    (re.compile(r"\b\d{4}[-/.]\d{1,2}[-/.]\d{1,2}\b"), "<date>"),
    (re.compile(r"\d{4}년\s*\d{1,2}월\s*\d{1,2}일"), "<date>"),
    (re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b"), "<time>"),
    (re.compile(r"\b[0-9a-f]{16,}\b", re.IGNORECASE), "<id>"),
    (re.compile(r"\b1\d{9}(?:\d{3})?\b"), "<ts>"),
    (re.compile(r"\b[a-zA-Z]+_\d+(?:_\d+)+\b"), "<id>"),
)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_prompt(prompt: str) -> str:
    """Replace volatile substrings with placeholders and collapse whitespace."""
    for pattern, placeholder in _VOLATILE_PATTERNS:
        prompt = pattern.sub(placeholder, prompt)
    return _WHITESPACE_RE.sub(" ", prompt).strip()


def prior_choice_digest(prior_choices: Sequence[PriorChoice | str]) -> str:
    """Hash of ordinal position and truncated text of each prior choice."""
    shape = [
        [ordinal, (c if isinstance(c, str) else c.choice)[:PRIOR_CHOICE_CHARS]]
        for ordinal, c in enumerate(prior_choices)
    ]
    encoded = json.dumps(shape, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def context_digest(context: Mapping[str, Any] | None) -> str:
    """Hash of the caller's provider context, with volatile values normalized."""
    encoded = json.dumps(
        dict(context or {}), sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str
    )
    return hashlib.sha256(normalize_prompt(encoded).encode("utf-8")).hexdigest()


def build_fingerprint(
    prompt: str,
    prior_choices: Sequence[PriorChoice | str] = (),
    preferences: StoryPreferences | None = None,
    provider: str = "",
    max_choices: int = 3,
    *,
    options_per_choice: int = 3,
    compress: bool = True,
    location: str | None = None,
    context: Mapping[str, Any] | None = None,
) -> str:
    """Cache key for a request.

    Every input that reaches the provider is part of the key: the prompt as
    sent (``compress`` says whether it was compressed), preferences, location,
    choice limits and the caller's context.

    Returns:
        ``"fp:"`` followed by a sha256 hex digest
    """
    prefs = preferences or StoryPreferences()
    canonical = {
        "prompt": normalize_prompt(prompt),
        "prior": prior_choice_digest(prior_choices),
        "preferences": prefs.model_dump(),
        "provider": provider,
        "max_choices": max_choices,
        "options_per_choice": options_per_choice,
        "compress": compress,
        "location": location,
        "context": context_digest(context),
    }
    encoded = json.dumps(canonical, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return "fp:" + hashlib.sha256(encoded.encode("utf-8")).hexdigest()

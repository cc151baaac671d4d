"""Shared fixtures and fakes."""

import asyncio
from typing import Any

import pytest

from narrative_optimizer.errors import CacheError
from narrative_optimizer.models import CachedResponse, CacheStats, ProviderResult, TokenUsage

STORY_CONTENT = """The rain had not stopped for three days when Mina reached the old station.
A stranger waited under the broken clock, holding a sealed letter.

**Choices:**
Old Station - What will Mina do?
1) Open the sealed letter right away - She risks angering the stranger
2) Ask the stranger who sent the letter - A careful way to learn the secret
3) Follow the stranger into the dark tunnel - Danger waits below
"""


class FakeProvider:
    """TextProvider that records calls and returns a canned result."""

    def __init__(
        self,
        content: str = STORY_CONTENT,
        raw_choices: Any = None,
        token_usage: TokenUsage | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.content = content
        self.raw_choices = raw_choices
        self.token_usage = token_usage or TokenUsage(prompt=120, completion=80, total=200)
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_prompt(self) -> str:
        return self.calls[-1][0]

    async def generate(self, prompt: str, context: dict[str, Any]) -> ProviderResult:
        self.calls.append((prompt, context))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProviderResult(
            content=self.content,
            raw_choices=self.raw_choices,
            token_usage=self.token_usage,
        )


class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FailingTier:
    """Cache tier whose every operation fails."""

    def __init__(self, name: str = "broken") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def get(self, key: str) -> CachedResponse | None:
        raise CacheError(self._name, "get", "connection refused")

    async def set(self, key: str, value: CachedResponse, ttl_ms: int | None = None) -> None:
        raise CacheError(self._name, "set", "connection refused")

    async def clear(self) -> None:
        raise CacheError(self._name, "clear", "connection refused")

    async def get_stats(self) -> CacheStats:
        raise CacheError(self._name, "stats", "connection refused")


def make_response(content: str = "X", quality: float = 0.9) -> CachedResponse:
    return CachedResponse(
        content=content,
        choices=[],
        token_usage=TokenUsage(prompt=10, completion=5, total=15),
        provider="providerA",
        quality=quality,
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()

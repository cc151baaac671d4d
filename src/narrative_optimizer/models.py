import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


def now_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt: int = Field(0, ge=0)
    completion: int = Field(0, ge=0)
    total: int = Field(0, ge=0)


class CachedResponse(BaseModel):
    """A provider response as stored by the cache tiers.

    The cache itself never inspects ``quality``; the orchestrator refuses to
    store responses below its configured minimum.
    """

    content: str
    choices: list[dict[str, Any]] = Field(default_factory=list)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    created_at: float = Field(default_factory=now_ms)
    provider: str = ""
    quality: float = Field(1.0, ge=0.0, le=1.0)
    # Set by the tier that served a read; copies into faster tiers never outlive it.
    expires_at: float | None = None


class CacheStats(BaseModel):
    """Cache statistics, always derived from tier counters."""

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    size: int = 0

    @classmethod
    def from_counts(cls, hits: int, misses: int, size: int) -> "CacheStats":
        total = hits + misses
        return cls(
            hits=hits,
            misses=misses,
            hit_rate=hits / total if total > 0 else 0.0,
            size=size,
        )


class ProviderResult(BaseModel):
    """What a TextProvider returns from ``generate``."""

    content: str
    raw_choices: Any = None
    token_usage: TokenUsage = Field(default_factory=TokenUsage)


class StoryPreferences(BaseModel):
    """Caller's semantic preferences for the narrative."""

    genre: str | None = None
    style: str | None = None
    mood: str | None = None
    theme: str | None = None


class PriorChoice(BaseModel):
    """A choice the reader already made earlier in the story."""

    question: str = ""
    choice: str


class StorySegment(BaseModel):
    """One previously generated part of the story and the choice that followed it."""

    location: str | None = None
    story: str | None = None
    choice: str | None = None


class GenerationRequest(BaseModel):
    """A single request entering the optimization pipeline."""

    prompt: str = Field(..., min_length=1)
    preferences: StoryPreferences = Field(default_factory=StoryPreferences)
    prior_choices: list[PriorChoice] = Field(default_factory=list)
    # Call sites where fidelity beats cost (final long-form bodies) turn this off.
    compress: bool = True
    location: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class OptimizationTelemetry(BaseModel):
    """Per-request optimization report returned alongside every payload."""

    cache_hit: bool = False
    tokens_saved: int = 0
    cost_saved: float = 0.0
    compression_ratio: float = 0.0
    choices_limited: bool = False
    original_tokens: int = 0
    final_tokens: int = 0
    provider: str = ""
    provider_calls: int = 0

    # Degradation flags
    cache_degraded: bool = False
    compression_fallback: bool = False
    choices_defaulted: bool = False
    choices_discarded: int = 0
    choices_valid: bool = True
    quality_gate_passed: bool = True
    cached: bool = False


class ResponseData(BaseModel):
    content: str
    choices: list[dict[str, Any]] = Field(default_factory=list)


class OptimizedResponse(BaseModel):
    """Output contract of the optimization pipeline."""

    success: bool = True
    data: ResponseData
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    optimization: OptimizationTelemetry = Field(default_factory=OptimizationTelemetry)


@dataclass
class PerformanceMetrics:
    """Track performance metrics for pipeline runs."""

    total_queries: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    total_lookup_time_ms: float = 0.0
    total_llm_time_ms: float = 0.0
    llm_calls: int = 0
    tokens_saved: int = 0
    cost_saved: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_queries == 0:
            return 0.0
        return self.cache_hits / self.total_queries

    @property
    def avg_lookup_time_ms(self) -> float:
        """Calculate average lookup time."""
        if self.total_queries == 0:
            return 0.0
        return self.total_lookup_time_ms / self.total_queries

    def record_hit(self, lookup_time_ms: float) -> None:
        """Record a cache hit."""
        self.total_queries += 1
        self.cache_hits += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_miss(self, lookup_time_ms: float) -> None:
        """Record a cache miss."""
        self.total_queries += 1
        self.cache_misses += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_llm_call(self, duration_ms: float) -> None:
        """Record a provider call."""
        self.llm_calls += 1
        self.total_llm_time_ms += duration_ms

    def record_savings(self, tokens: int, cost: float) -> None:
        self.tokens_saved += tokens
        self.cost_saved += cost

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_queries": self.total_queries,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": self.hit_rate,
            "avg_lookup_time_ms": self.avg_lookup_time_ms,
            "total_llm_time_ms": self.total_llm_time_ms,
            "llm_calls": self.llm_calls,
            "tokens_saved": self.tokens_saved,
            "cost_saved": self.cost_saved,
        }


class OptimizationStats(BaseModel):
    """Snapshot returned by ``OptimizationService.stats``."""

    cache: CacheStats | None = None
    performance: dict[str, float | int] = Field(default_factory=dict)
    compression: dict[str, Any] = Field(default_factory=dict)
    choices: dict[str, Any] = Field(default_factory=dict)
    budget: dict[str, Any] | None = None

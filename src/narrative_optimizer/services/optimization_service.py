"""Optimization service: the request pipeline.

Per request:
    CacheCheck -> Hit -> done (no provider call)
               -> Miss -> Compress -> ProviderCall -> ChoiceLimit
                       -> QualityGate -> cache write (if passed) -> done

Every response carries OptimizationTelemetry. Only ProviderError (including
BudgetExceededError) and ConfigError are raised; cache failures, weak
compression and unparseable choices degrade into telemetry flags.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from narrative_optimizer.choices import ChoiceProcessor, StructuredPromptBuilder
from narrative_optimizer.compression import PromptCompressor, QualityValidator, TokenEstimator
from narrative_optimizer.config import AUTO_PROVIDER, DEFAULT_CONFIG, OptimizationConfig
from narrative_optimizer.cost import BudgetTracker, CostEstimator
from narrative_optimizer.errors import ConfigError, ProviderError
from narrative_optimizer.models import (
    CachedResponse,
    GenerationRequest,
    OptimizationStats,
    OptimizationTelemetry,
    OptimizedResponse,
    PerformanceMetrics,
    PriorChoice,
    ProviderResult,
    ResponseData,
    StoryPreferences,
    StorySegment,
    TokenUsage,
    now_ms,
)
from narrative_optimizer.protocols import PersistentStore, TextProvider

from .composite_cache import CompositeCache, create_cache
from .fingerprint import build_fingerprint
from .response_gate import ResponseQualityGate

logger = logging.getLogger(__name__)


class OptimizationService:
    """Orchestrates cache, compression, provider call and choice limiting.

    All components are built here from one immutable OptimizationConfig;
    none of them reaches back into the service.

    Example:
        ```python
        from narrative_optimizer.services import OptimizationService

        service = OptimizationService.create({"providerA": MyProvider()})
        response = await service.generate(GenerationRequest(prompt="..."))
        response.optimization.cache_hit
        ```
    """

    def __init__(
        self,
        providers: Mapping[str, TextProvider],
        config: OptimizationConfig = DEFAULT_CONFIG,
        cache: CompositeCache | None = None,
        store: PersistentStore | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the optimization service.

        Args:
            providers: Text providers by name (required, at least one).
            config: Immutable optimization config.
            cache: Prebuilt composite cache. If None, built from ``config.cache``.
            store: Persistent store for the default cache. Ignored with ``cache``.
            clock: Millisecond clock shared with the cache tiers and budget.

        Raises:
            ConfigError: If no provider is given or the cache cannot be built.
        """
        if not providers:
            raise ConfigError("At least one text provider is required")

        self._providers = dict(providers)
        self._config = config
        self._clock = clock or now_ms
        self._cache = (
            cache if cache is not None else create_cache(config.cache, store=store, clock=self._clock)
        )

        self._tokens = TokenEstimator()
        self._compressor = PromptCompressor(self._tokens, QualityValidator(), config.compression)
        self._choices = ChoiceProcessor(config.choices)
        self._prompts = StructuredPromptBuilder(config.choices)
        self._costs = CostEstimator(config.cost, self._tokens)
        self._budget = BudgetTracker(
            config.cost.max_daily_cost if config.cost.enabled else None, self._clock
        )
        self._gate = ResponseQualityGate(config.response_gate)

        self._metrics = PerformanceMetrics()
        self._compression_stats = {"requests": 0, "tokens_saved": 0, "fallbacks": 0}
        self._choice_stats = {"processed": 0, "limited": 0, "defaulted": 0, "discarded": 0}

    @classmethod
    def create(
        cls,
        providers: Mapping[str, TextProvider],
        config: OptimizationConfig | None = None,
        store: PersistentStore | None = None,
    ) -> "OptimizationService":
        """Factory method to create OptimizationService with defaults.

        Args:
            providers: Text providers by name (required).
            config: Optimization config. If None, built from environment settings.
            store: Persistent store. If None, chosen by ``CACHE_PERSISTENT_BACKEND``.

        Returns:
            Configured OptimizationService instance
        """
        return cls(
            providers=providers,
            config=config or OptimizationConfig.from_settings(),
            store=store,
        )

    async def generate(
        self, request: GenerationRequest, *, timeout: float | None = None
    ) -> OptimizedResponse:
        """Run one request through the pipeline.

        Args:
            request: The generation request
            timeout: Seconds allowed for the provider call. None waits indefinitely.

        Returns:
            Payload plus optimization telemetry

        Raises:
            ProviderError: If the provider fails or times out.
            BudgetExceededError: If the daily budget would be exceeded.
        """
        provider_name = self._select_provider(request.preferences)
        compress = self._config.compression.enabled and request.compress
        key = build_fingerprint(
            request.prompt,
            request.prior_choices,
            request.preferences,
            provider_name,
            self._config.choices.max_choices,
            options_per_choice=self._config.choices.options_per_choice,
            compress=compress,
            location=request.location,
            context=request.context,
        )

        start = time.perf_counter()
        lookup = await self._cache.lookup(key)
        lookup_ms = (time.perf_counter() - start) * 1000

        if lookup.value is not None:
            self._metrics.record_hit(lookup_ms)
            return self._from_cache(lookup.value, lookup.degraded)
        self._metrics.record_miss(lookup_ms)

        original_tokens = self._tokens.estimate(request.prompt)
        prompt = request.prompt
        compression_ratio = 0.0
        compression_fallback = False

        if compress:
            compressed = self._compressor.compress(request.prompt)
            prompt = compressed.compressed
            compression_ratio = compressed.compression_ratio
            compression_fallback = compressed.fallback_used
            self._compression_stats["requests"] += 1
            self._compression_stats["tokens_saved"] += compressed.tokens_saved
            self._compression_stats["fallbacks"] += int(compressed.fallback_used)

        final_tokens = self._tokens.estimate(prompt)

        if self._config.cost.enabled:
            self._budget.ensure(self._costs.estimate_prompt_cost(prompt, provider_name))

        result = await self._call_provider(provider_name, prompt, request, timeout)

        processed = self._choices.process(result, location=request.location)
        self._choice_stats["processed"] += 1
        self._choice_stats["limited"] += int(processed.limited)
        self._choice_stats["defaulted"] += int(processed.defaulted)
        self._choice_stats["discarded"] += processed.discarded_count
        choices = [choice.to_dict() for choice in processed.choices]

        gate = self._gate.evaluate(result.content, processed.choices, processed.discarded_count)
        if not gate.passed:
            logger.info("Response not cached, quality gate failed: %s", "; ".join(gate.reasons))

        usage = self._usage(result, final_tokens)
        if self._config.cost.enabled:
            self._budget.record(self._costs.estimate_cost(usage.total, provider_name))

        tokens_saved = max(0, original_tokens - final_tokens)
        cost_saved = self._costs.estimate_cost(tokens_saved, provider_name)
        self._metrics.record_savings(tokens_saved, cost_saved)

        cached = False
        degraded = lookup.degraded
        if self._cache.enabled and gate.passed and not processed.defaulted:
            failed = await self._cache.write(
                key,
                CachedResponse(
                    content=result.content,
                    choices=choices,
                    token_usage=usage,
                    created_at=self._clock(),
                    provider=provider_name,
                    quality=min(1.0, gate.score),
                ),
            )
            cached = len(failed) < len(self._cache.tiers)
            degraded = degraded or bool(failed)

        return OptimizedResponse(
            success=True,
            data=ResponseData(content=result.content, choices=choices),
            token_usage=usage,
            optimization=OptimizationTelemetry(
                cache_hit=False,
                tokens_saved=tokens_saved,
                cost_saved=cost_saved,
                compression_ratio=compression_ratio,
                choices_limited=processed.limited,
                original_tokens=original_tokens,
                final_tokens=final_tokens,
                provider=provider_name,
                provider_calls=1,
                cache_degraded=degraded,
                compression_fallback=compression_fallback,
                choices_defaulted=processed.defaulted,
                choices_discarded=processed.discarded_count,
                choices_valid=processed.valid,
                quality_gate_passed=gate.passed,
                cached=cached,
            ),
        )

    async def generate_story(
        self,
        segments: list[StorySegment],
        preferences: StoryPreferences | None = None,
        *,
        prior_choices: list[PriorChoice] | None = None,
        location: str | None = None,
        compact: bool = False,
        compress: bool = True,
        timeout: float | None = None,
    ) -> OptimizedResponse:
        """Build the structured narrative prompt and run it through ``generate``."""
        preferences = preferences or StoryPreferences()
        if compact:
            prompt = self._prompts.build_compact(segments, preferences)
        else:
            prompt = self._prompts.build(segments, preferences, prior_choices=prior_choices)

        request = GenerationRequest(
            prompt=prompt,
            preferences=preferences,
            prior_choices=prior_choices or [],
            compress=compress,
            location=location,
        )
        return await self.generate(request, timeout=timeout)

    async def stats(self) -> OptimizationStats:
        return OptimizationStats(
            cache=await self._cache.get_stats() if self._cache.enabled else None,
            performance=self._metrics.to_dict(),
            compression=dict(self._compression_stats),
            choices=dict(self._choice_stats),
            budget=self._budget.snapshot() if self._config.cost.enabled else None,
        )

    async def clear_cache(self) -> None:
        await self._cache.clear()
        logger.info("Cache cleared")

    async def is_healthy(self) -> bool:
        """True when at least one provider is registered and no cache tier fails stats."""
        tier_stats = await self._cache.tier_stats()
        return bool(self._providers) and len(tier_stats) == len(self._cache.tiers)

    @property
    def config(self) -> OptimizationConfig:
        return self._config

    @property
    def cache(self) -> CompositeCache:
        """Get the underlying composite cache (for testing)."""
        return self._cache

    @property
    def providers(self) -> dict[str, TextProvider]:
        return dict(self._providers)

    def _select_provider(self, preferences: StoryPreferences) -> str:
        if self._config.cost.enabled:
            name = self._costs.select_provider(preferences)
        else:
            preferred = self._config.cost.preferred_provider
            name = preferred if preferred != AUTO_PROVIDER else next(iter(self._providers))

        if name not in self._providers:
            fallback = next(iter(self._providers))
            logger.debug("Provider %s not registered, using %s", name, fallback)
            return fallback
        return name

    async def _call_provider(
        self,
        name: str,
        prompt: str,
        request: GenerationRequest,
        timeout: float | None,
    ) -> ProviderResult:
        context: dict[str, Any] = {
            **request.context,
            "preferences": request.preferences.model_dump(),
            "max_choices": self._config.choices.max_choices,
            "options_per_choice": self._config.choices.options_per_choice,
            "location": request.location,
        }

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._providers[name].generate(prompt, context), timeout=timeout
            )
            if isinstance(result, dict):
                result = ProviderResult.model_validate(result)
        except ProviderError:
            raise
        except asyncio.TimeoutError as e:
            raise ProviderError(f"timed out after {timeout}s", provider=name) from e
        except Exception as e:
            raise ProviderError(str(e) or type(e).__name__, provider=name) from e
        finally:
            self._metrics.record_llm_call((time.perf_counter() - start) * 1000)

        return result

    def _usage(self, result: ProviderResult, prompt_tokens: int) -> TokenUsage:
        """Provider-reported usage, or an estimate when the provider reports none."""
        if result.token_usage.total > 0:
            return result.token_usage
        completion = self._tokens.estimate(result.content)
        return TokenUsage(prompt=prompt_tokens, completion=completion, total=prompt_tokens + completion)

    def _from_cache(self, cached: CachedResponse, degraded: bool) -> OptimizedResponse:
        tokens_saved = cached.token_usage.total
        cost_saved = self._costs.estimate_cost(tokens_saved, cached.provider)
        self._metrics.record_savings(tokens_saved, cost_saved)

        return OptimizedResponse(
            success=True,
            data=ResponseData(content=cached.content, choices=cached.choices),
            token_usage=cached.token_usage,
            optimization=OptimizationTelemetry(
                cache_hit=True,
                tokens_saved=tokens_saved,
                cost_saved=cost_saved,
                provider=cached.provider,
                provider_calls=0,
                cache_degraded=degraded,
                cached=True,
            ),
        )


# Process-wide convenience instance. Explicit and resettable for tests.
_default_service: OptimizationService | None = None


def get_default_service(
    providers: Mapping[str, TextProvider] | None = None,
) -> OptimizationService:
    """Return the process-wide service, creating it on first use.

    Raises:
        ConfigError: If no default exists yet and no providers are given.
    """
    global _default_service
    if _default_service is None:
        if not providers:
            raise ConfigError("No default OptimizationService; pass providers to create one")
        _default_service = OptimizationService.create(providers)
    return _default_service


def set_default_service(service: OptimizationService) -> None:
    global _default_service
    _default_service = service


def reset_default_service() -> None:
    global _default_service
    _default_service = None

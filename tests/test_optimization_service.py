"""
Tests for the optimization pipeline.
"""

import pytest
from conftest import STORY_CONTENT, FailingTier, FakeProvider

from narrative_optimizer.config import (
    CacheConfig,
    CompressionConfig,
    CostConfig,
    OptimizationConfig,
)
from narrative_optimizer.errors import BudgetExceededError, ConfigError, ProviderError
from narrative_optimizer.models import GenerationRequest, StoryPreferences, StorySegment
from narrative_optimizer.repositories import InMemoryPersistentStore
from narrative_optimizer.services import (
    CompositeCache,
    OptimizationService,
    get_default_service,
    reset_default_service,
    set_default_service,
)

TEST_CONFIG = OptimizationConfig(cost=CostConfig(preferred_provider="providerA"))

PROMPT = "Write the opening scene at the old station where Mina meets a stranger."


def make_service(provider, config=TEST_CONFIG, **kwargs) -> OptimizationService:
    kwargs.setdefault("store", InMemoryPersistentStore())
    return OptimizationService({"providerA": provider}, config=config, **kwargs)


def structured_choices(n: int) -> list[dict]:
    return [
        {
            "id": f"c{i}",
            "question": f"Question {i}?",
            "options": [f"Walk toward landmark {i}-{j} at once" for j in range(3)],
        }
        for i in range(n)
    ]


class TestGenerate:
    async def test_miss_calls_provider_and_caches(self, provider):
        service = make_service(provider)

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert provider.call_count == 1
        assert response.success
        assert response.data.content == STORY_CONTENT
        assert len(response.data.choices) == 1
        telemetry = response.optimization
        assert not telemetry.cache_hit
        assert telemetry.provider == "providerA"
        assert telemetry.provider_calls == 1
        assert telemetry.quality_gate_passed
        assert telemetry.cached
        assert not telemetry.cache_degraded

    async def test_identical_requests_call_provider_once(self, provider):
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT, preferences=StoryPreferences(genre="mystery"))

        first = await service.generate(request)
        second = await service.generate(request)

        assert provider.call_count == 1
        assert second.optimization.cache_hit
        assert second.optimization.provider_calls == 0
        assert second.optimization.tokens_saved == 200
        assert second.data == first.data
        assert second.token_usage == first.token_usage

    async def test_volatile_text_does_not_defeat_cache(self, provider):
        service = make_service(provider)

        await service.generate(GenerationRequest(prompt=f"{PROMPT} Now: 2024-05-01 10:30:00"))
        second = await service.generate(GenerationRequest(prompt=f"{PROMPT} Now: 2024-05-02 08:00:00"))

        assert provider.call_count == 1
        assert second.optimization.cache_hit

    async def test_different_preferences_miss(self, provider):
        service = make_service(provider)

        await service.generate(GenerationRequest(prompt=PROMPT, preferences=StoryPreferences(mood="dark")))
        await service.generate(GenerationRequest(prompt=PROMPT, preferences=StoryPreferences(mood="light")))

        assert provider.call_count == 2

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            ({"compress": True}, {"compress": False}),
            (
                {"preferences": StoryPreferences(theme="revenge")},
                {"preferences": StoryPreferences(theme="love")},
            ),
            ({"location": "harbor"}, {"location": "market"}),
            ({"context": {"chapter": 1}}, {"context": {"chapter": 2}}),
        ],
    )
    async def test_inputs_reaching_provider_miss(self, provider, first, second):
        service = make_service(provider)

        await service.generate(GenerationRequest(prompt=PROMPT, **first))
        response = await service.generate(GenerationRequest(prompt=PROMPT, **second))

        assert provider.call_count == 2
        assert not response.optimization.cache_hit

    async def test_full_fidelity_request_never_gets_compressed_response(self, provider):
        service = make_service(provider)
        prompt = "The  night was very very  dark. Furthermore, the wind howled!!"

        await service.generate(GenerationRequest(prompt=prompt))
        await service.generate(GenerationRequest(prompt=prompt, compress=False))

        assert provider.call_count == 2
        assert provider.last_prompt == prompt

    async def test_discarded_choice_fails_gate_and_is_not_cached(self):
        broken = {"id": "broken", "question": "Where now?", "options": ["Run to the docks now"]}
        provider = FakeProvider(raw_choices=[*structured_choices(1), broken])
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT)

        first = await service.generate(request)
        await service.generate(request)

        assert provider.call_count == 2
        assert len(first.data.choices) == 1
        assert first.optimization.choices_discarded == 1
        assert not first.optimization.quality_gate_passed
        assert not first.optimization.cached
        assert (await service.stats()).choices["discarded"] == 2

    async def test_near_duplicate_options_are_not_cached(self):
        options = ["Open the heavy iron door", "Open the heavy iron door", "Run back to the platform"]
        provider = FakeProvider(raw_choices=[{"id": "c", "question": "Now?", "options": options}])
        service = make_service(provider)

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert len(response.data.choices[0]["options"]) == 3
        assert not response.optimization.choices_valid
        assert not response.optimization.quality_gate_passed
        assert not response.optimization.cached

    async def test_valid_choices_are_reported(self, provider):
        service = make_service(provider)

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert response.optimization.choices_valid
        assert response.optimization.choices_discarded == 0

    async def test_failed_quality_gate_is_not_cached(self):
        provider = FakeProvider(content="Too short.", raw_choices=structured_choices(1))
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT)

        first = await service.generate(request)
        await service.generate(request)

        assert provider.call_count == 2
        assert not first.optimization.quality_gate_passed
        assert not first.optimization.cached
        assert first.data.content == "Too short."

    async def test_default_choice_set_is_not_cached(self):
        content = "The station was silent and nothing at all seemed to happen for a long while."
        provider = FakeProvider(content=content)
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT, location="the station")

        first = await service.generate(request)
        await service.generate(request)

        assert provider.call_count == 2
        assert first.optimization.choices_defaulted
        assert not first.optimization.cached
        assert first.data.choices[0]["id"] == "default"
        assert first.data.choices[0]["question"] == "What will you do at the station?"

    async def test_choices_are_limited(self):
        provider = FakeProvider(raw_choices=structured_choices(5))
        service = make_service(provider)

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert len(response.data.choices) == 3
        assert response.optimization.choices_limited

    async def test_prompt_is_compressed_before_provider_call(self, provider):
        service = make_service(provider)
        prompt = "The  night was very very  dark. Furthermore, the wind howled!!"

        response = await service.generate(GenerationRequest(prompt=prompt))

        assert provider.last_prompt != prompt
        assert "  " not in provider.last_prompt
        assert response.optimization.final_tokens < response.optimization.original_tokens
        assert response.optimization.compression_ratio > 0

    async def test_compression_can_be_skipped_per_request(self, provider):
        service = make_service(provider)
        prompt = "The  night was very very  dark."

        response = await service.generate(GenerationRequest(prompt=prompt, compress=False))

        assert provider.last_prompt == prompt
        assert response.optimization.compression_ratio == 0.0

    async def test_compression_disabled_in_config(self, provider):
        config = TEST_CONFIG.with_changes(compression=CompressionConfig(enabled=False))
        service = make_service(provider, config=config)
        prompt = "The  night was very very  dark."

        await service.generate(GenerationRequest(prompt=prompt))

        assert provider.last_prompt == prompt

    async def test_provider_receives_context(self, provider):
        service = make_service(provider)

        await service.generate(
            GenerationRequest(prompt=PROMPT, location="harbor", context={"session": "s1"})
        )

        _, context = provider.calls[0]
        assert context["session"] == "s1"
        assert context["location"] == "harbor"
        assert context["max_choices"] == 3

    async def test_dict_results_are_accepted(self):
        class DictProvider:
            async def generate(self, prompt, context):
                return {"content": STORY_CONTENT, "token_usage": {"prompt": 1, "completion": 2, "total": 3}}

        service = make_service(DictProvider())

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert response.token_usage.total == 3

    async def test_missing_usage_is_estimated(self):
        provider = FakeProvider()
        provider.token_usage = provider.token_usage.model_copy(update={"prompt": 0, "completion": 0, "total": 0})
        service = make_service(provider)

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        usage = response.token_usage
        assert usage.completion > 0
        assert usage.total == usage.prompt + usage.completion


class TestProviderFailures:
    async def test_provider_error_propagates(self):
        error = ProviderError("quota exhausted", provider="providerA")
        service = make_service(FakeProvider(error=error))

        with pytest.raises(ProviderError) as exc_info:
            await service.generate(GenerationRequest(prompt=PROMPT))

        assert exc_info.value is error

    async def test_other_exceptions_become_provider_errors(self):
        service = make_service(FakeProvider(error=RuntimeError("connection reset")))

        with pytest.raises(ProviderError) as exc_info:
            await service.generate(GenerationRequest(prompt=PROMPT))

        assert exc_info.value.provider == "providerA"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_timeout_becomes_provider_error(self):
        service = make_service(FakeProvider(delay=1.0))

        with pytest.raises(ProviderError, match="timed out"):
            await service.generate(GenerationRequest(prompt=PROMPT), timeout=0.05)

    async def test_failed_request_is_not_cached(self):
        provider = FakeProvider(error=RuntimeError("boom"))
        service = make_service(provider)

        with pytest.raises(ProviderError):
            await service.generate(GenerationRequest(prompt=PROMPT))

        provider.error = None
        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert not response.optimization.cache_hit
        assert provider.call_count == 2

    async def test_budget_exceeded_blocks_provider_call(self, provider):
        config = TEST_CONFIG.with_changes(
            cost=CostConfig(max_daily_cost=0.0, preferred_provider="providerA")
        )
        service = make_service(provider, config=config)

        with pytest.raises(BudgetExceededError):
            await service.generate(GenerationRequest(prompt=PROMPT))

        assert provider.call_count == 0

    async def test_budget_records_spend(self, provider):
        config = TEST_CONFIG.with_changes(
            cost=CostConfig(max_daily_cost=5.0, preferred_provider="providerA")
        )
        service = make_service(provider, config=config)

        await service.generate(GenerationRequest(prompt=PROMPT))

        stats = await service.stats()
        assert stats.budget["used"] > 0
        assert stats.budget["limit"] == 5.0


class TestCacheBehaviour:
    async def test_cache_outage_is_invisible(self, provider):
        service = make_service(provider, cache=CompositeCache([FailingTier()]))

        response = await service.generate(GenerationRequest(prompt=PROMPT))

        assert response.success
        assert response.optimization.cache_degraded
        assert not response.optimization.cached
        assert provider.call_count == 1

    async def test_memory_ttl(self, provider, clock):
        config = TEST_CONFIG.with_changes(
            cache=CacheConfig(memory_ttl_ms=1000, persistent_enabled=False)
        )
        service = make_service(provider, config=config, clock=clock)
        request = GenerationRequest(prompt=PROMPT)

        await service.generate(request)
        clock.now = 500
        hit = await service.generate(request)
        clock.now = 1500
        miss = await service.generate(request)

        assert hit.optimization.cache_hit
        assert not miss.optimization.cache_hit
        assert provider.call_count == 2

    async def test_persistent_hit_refills_memory(self, provider):
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT)
        await service.generate(request)
        memory = service.cache.tiers[0]
        await memory.clear()

        response = await service.generate(request)

        assert response.optimization.cache_hit
        assert len(memory) == 1
        assert provider.call_count == 1

    async def test_caching_disabled(self, provider):
        config = TEST_CONFIG.with_changes(cache=CacheConfig(enabled=False))
        service = make_service(provider, config=config)
        request = GenerationRequest(prompt=PROMPT)

        first = await service.generate(request)
        await service.generate(request)

        assert provider.call_count == 2
        assert not first.optimization.cached

    async def test_clear_cache(self, provider):
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT)
        await service.generate(request)

        await service.clear_cache()
        await service.generate(request)

        assert provider.call_count == 2


class TestStoryAndStats:
    async def test_generate_story_builds_structured_prompt(self, provider):
        service = make_service(provider)
        segments = [StorySegment(location="Station", story="Mina arrived.", choice="Waited")]

        response = await service.generate_story(
            segments, StoryPreferences(genre="mystery"), compress=False
        )

        assert "Genre: mystery" in provider.last_prompt
        assert "**Choices:**" in provider.last_prompt
        assert response.data.choices

    async def test_stats(self, provider):
        service = make_service(provider)
        request = GenerationRequest(prompt=PROMPT)
        await service.generate(request)
        await service.generate(request)

        stats = await service.stats()

        assert stats.performance["total_queries"] == 2
        assert stats.performance["cache_hits"] == 1
        assert stats.performance["llm_calls"] == 1
        assert stats.compression["requests"] == 1
        assert stats.choices["processed"] == 1
        assert stats.cache.hits == 1

    async def test_is_healthy(self, provider):
        assert await make_service(provider).is_healthy()
        assert not await make_service(provider, cache=CompositeCache([FailingTier()])).is_healthy()

    def test_requires_a_provider(self):
        with pytest.raises(ConfigError):
            OptimizationService({}, config=TEST_CONFIG)

    async def test_unregistered_provider_falls_back(self, provider):
        config = TEST_CONFIG.with_changes(cost=CostConfig(preferred_provider="auto"))
        service = make_service(provider, config=config)

        response = await service.generate(
            GenerationRequest(prompt=PROMPT, preferences=StoryPreferences(genre="fantasy"))
        )

        assert response.optimization.provider == "providerA"


class TestDefaultService:
    def setup_method(self):
        reset_default_service()

    def teardown_method(self):
        reset_default_service()

    def test_missing_default_raises(self):
        with pytest.raises(ConfigError):
            get_default_service()

    def test_set_and_reset(self, provider):
        service = make_service(provider)

        set_default_service(service)
        assert get_default_service() is service

        reset_default_service()
        with pytest.raises(ConfigError):
            get_default_service()

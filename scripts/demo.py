#!/usr/bin/env python3
"""
Demo script for the narrative optimizer.

Runs the pipeline against an in-process scripted provider so that cache
hits, prompt compression and choice limiting can be watched without a
real text-generation API or a Redis server.
"""

import asyncio
from typing import Any

from narrative_optimizer import GenerationRequest, OptimizationService, StoryPreferences
from narrative_optimizer.compression import create_compressor
from narrative_optimizer.config import CostConfig, OptimizationConfig, configure_logging
from narrative_optimizer.models import ProviderResult, StorySegment, TokenUsage
from narrative_optimizer.repositories import InMemoryPersistentStore

STORY = """**Story**
Fog rolled over the harbor as Mina found the lighthouse door unlocked.

**Choices:**
Lighthouse - What does Mina do?
1) Climb the spiral stairs to the lamp room - Someone left a light burning
2) Search the keeper's desk for the missing logbook - It may hold the secret
3) Call out to whoever is hiding below - Risky, but quick
4) Leave and warn the harbor master - Safe, but slow

Harbor - Who can she trust?
1) The ferryman who saw everything - He wants money
2) The keeper's daughter - She lies easily
"""


class ScriptedProvider:
    """Returns the same story for every prompt and counts calls."""

    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, prompt: str, context: dict[str, Any]) -> ProviderResult:
        self.calls += 1
        await asyncio.sleep(0.2)
        return ProviderResult(
            content=STORY,
            token_usage=TokenUsage(prompt=len(prompt) // 4, completion=180, total=len(prompt) // 4 + 180),
        )


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def demo_compression() -> None:
    """Demonstrate staged compression and its quality gate."""
    print_section("Prompt Compression")

    prompt = (
        "Furthermore,  the   story should be very very atmospheric. "
        "Perhaps the heroine is able to notice small details in order to solve the mystery!! "
        "The harbor, the lighthouse and the ferry all matter to the plot."
    )
    compressor = create_compressor()

    for target in (10, 30, 90):
        result = compressor.compress(prompt, target_reduction_percent=target)
        print(f"\n  Target {target}%:")
        print(f"    Achieved: {result.compression_ratio:.1f}%  Quality: {result.quality:.2f}")
        print(f"    Fallback: {'yes' if result.fallback_used else 'no'}")
        print(f"    Prompt:   {result.compressed[:90]}...")


async def demo_pipeline() -> None:
    """Demonstrate cache misses, hits and choice limiting."""
    print_section("Optimization Pipeline")

    provider = ScriptedProvider()
    service = OptimizationService(
        {"providerA": provider},
        config=OptimizationConfig(cost=CostConfig(preferred_provider="providerA")),
        store=InMemoryPersistentStore(),
    )

    request = GenerationRequest(
        prompt="Continue the lighthouse chapter. Requested at 2024-05-01 10:30:00.",
        preferences=StoryPreferences(genre="mystery", mood="tense"),
    )
    repeat = request.model_copy(
        update={"prompt": "Continue the lighthouse chapter. Requested at 2024-05-02 21:05:13."}
    )

    for label, req in (("First request", request), ("Same request, new timestamp", repeat)):
        response = await service.generate(req)
        telemetry = response.optimization
        status = "✓ CACHE HIT" if telemetry.cache_hit else "✗ Cache miss"
        print(f"\n  {label}: {status}")
        print(f"    Provider calls: {telemetry.provider_calls}  Tokens saved: {telemetry.tokens_saved}")
        print(f"    Choices: {len(response.data.choices)}  Limited: {telemetry.choices_limited}")
        for choice in response.data.choices:
            print(f"      {choice['location']} - {choice['question']}")
            for option in choice["options"]:
                print(f"        • {option['text']}")

    print(f"\n  Provider was called {provider.calls} time(s)")

    print_section("Structured Story Prompt")
    segments = [StorySegment(location="Harbor", story="Mina arrived on the night ferry.", choice="Followed the light")]
    response = await service.generate_story(segments, StoryPreferences(genre="mystery"), compact=True)
    print(f"\n  Cache hit: {response.optimization.cache_hit}")
    print(f"  Compression ratio: {response.optimization.compression_ratio:.1f}%")

    stats = await service.stats()
    print("\n📊 Stats:")
    print(f"  Queries: {stats.performance['total_queries']}  Hit rate: {stats.performance['hit_rate']:.0%}")
    print(f"  Compression fallbacks: {stats.compression['fallbacks']}")


def main() -> None:
    """Run all demos."""
    configure_logging("WARNING")

    print("\n🚀 Narrative Optimizer Demo")
    print("=" * 70)

    demo_compression()
    asyncio.run(demo_pipeline())

    print("\n" + "=" * 70)
    print("✅ Demo completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    main()

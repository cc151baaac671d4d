"""Provider cost estimation and cost-aware provider selection."""

from narrative_optimizer.compression import TokenEstimator
from narrative_optimizer.config import AUTO_PROVIDER, PROVIDER_A, PROVIDER_B, CostConfig
from narrative_optimizer.models import StoryPreferences

# USD per 1k tokens
PRICES: dict[str, dict[str, float]] = {
    PROVIDER_A: {"input": 0.00015, "output": 0.0006},
    PROVIDER_B: {"input": 0.003, "output": 0.015},
}

INPUT_SHARE = 0.75
OUTPUT_SHARE = 0.25

# Genres that benefit from the stronger (more expensive) provider
PREMIUM_GENRES = frozenset({"fantasy", "sf", "sci-fi", "science fiction", "판타지"})


class CostEstimator:
    """Estimates request cost from token counts.

    Unknown provider names are priced like ``providerA``.
    """

    def __init__(
        self,
        config: CostConfig | None = None,
        token_estimator: TokenEstimator | None = None,
    ) -> None:
        self._config = config or CostConfig()
        self._tokens = token_estimator or TokenEstimator()

    def estimate_cost(self, tokens: int, provider: str) -> float:
        """Cost of ``tokens`` total tokens, assuming a 3:1 input:output split."""
        price = PRICES.get(provider, PRICES[PROVIDER_A])
        return (
            tokens * INPUT_SHARE / 1000 * price["input"]
            + tokens * OUTPUT_SHARE / 1000 * price["output"]
        )

    def estimate_prompt_cost(self, prompt: str, provider: str) -> float:
        """Predicted cost of sending ``prompt``, using the precise estimate."""
        return self.estimate_cost(self._tokens.estimate_precise(prompt), provider)

    def select_provider(self, preferences: StoryPreferences | None = None) -> str:
        if self._config.preferred_provider != AUTO_PROVIDER:
            return self._config.preferred_provider

        genre = ((preferences.genre if preferences else None) or "").strip().lower()
        return PROVIDER_B if genre in PREMIUM_GENRES else PROVIDER_A

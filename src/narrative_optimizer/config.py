import logging
import os
from dataclasses import dataclass, field, replace
from functools import lru_cache

import redis
from dotenv import load_dotenv

from narrative_optimizer.errors import ConfigError

load_dotenv()

PROVIDER_A = "providerA"
PROVIDER_B = "providerB"
AUTO_PROVIDER = "auto"
KNOWN_PROVIDERS = (PROVIDER_A, PROVIDER_B)

PERSISTENT_BACKENDS = ("redis", "memory", "none")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache
    cache_enabled: bool = os.getenv("CACHE_ENABLED", "true").lower() == "true"
    cache_memory_ttl_ms: int = int(os.getenv("CACHE_MEMORY_TTL_MS", "60000"))  # 1 minute
    cache_db_ttl_hours: float = float(os.getenv("CACHE_DB_TTL_HOURS", "24"))
    cache_max_memory_size: int = int(os.getenv("CACHE_MAX_MEMORY_SIZE", "100"))
    cache_persistent_backend: str = os.getenv("CACHE_PERSISTENT_BACKEND", "redis")
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "narrative_cache")
    cache_tier_timeout_ms: int = int(os.getenv("CACHE_TIER_TIMEOUT_MS", "250"))

    # Compression
    compression_enabled: bool = os.getenv("COMPRESSION_ENABLED", "true").lower() == "true"
    compression_target_reduction: float = float(os.getenv("COMPRESSION_TARGET_REDUCTION", "30"))
    compression_preserve_quality: bool = (
        os.getenv("COMPRESSION_PRESERVE_QUALITY", "true").lower() == "true"
    )
    compression_min_quality: float = float(os.getenv("COMPRESSION_MIN_QUALITY", "0.7"))

    # Choices
    choices_enabled: bool = os.getenv("CHOICES_ENABLED", "true").lower() == "true"
    choices_max: int = int(os.getenv("CHOICES_MAX", "3"))
    choices_enforce_limit: bool = os.getenv("CHOICES_ENFORCE_LIMIT", "true").lower() == "true"

    # Cost
    cost_enabled: bool = os.getenv("COST_ENABLED", "true").lower() == "true"
    cost_max_daily: float | None = (
        float(os.environ["COST_MAX_DAILY"]) if os.getenv("COST_MAX_DAILY") else None
    )
    cost_preferred_provider: str = os.getenv("COST_PREFERRED_PROVIDER", AUTO_PROVIDER)

    # Response quality gate
    response_min_length: int = int(os.getenv("RESPONSE_MIN_LENGTH", "50"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_persistent_backend not in PERSISTENT_BACKENDS:
            raise ValueError(
                f"CACHE_PERSISTENT_BACKEND must be one of {list(PERSISTENT_BACKENDS)}, "
                f"got {self.cache_persistent_backend!r}"
            )

        if self.choices_max not in (2, 3):
            raise ValueError(f"CHOICES_MAX must be 2 or 3, got {self.choices_max}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and the HTTP app."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Runtime optimization config (immutable, one per OptimizationService)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True
    memory_ttl_ms: int = 60_000
    db_ttl_hours: float = 24
    max_memory_size: int = 100
    memory_enabled: bool = True
    persistent_enabled: bool = True
    tier_timeout_ms: int = 250

    def __post_init__(self) -> None:
        if self.enabled and not (self.memory_enabled or self.persistent_enabled):
            raise ConfigError("Caching is enabled but no cache backend is enabled")
        if self.memory_ttl_ms <= 0:
            raise ConfigError(f"memory_ttl_ms must be positive, got {self.memory_ttl_ms}")
        if self.db_ttl_hours <= 0:
            raise ConfigError(f"db_ttl_hours must be positive, got {self.db_ttl_hours}")
        if self.max_memory_size < 1:
            raise ConfigError(f"max_memory_size must be >= 1, got {self.max_memory_size}")
        if self.tier_timeout_ms <= 0:
            raise ConfigError(f"tier_timeout_ms must be positive, got {self.tier_timeout_ms}")


@dataclass(frozen=True)
class CompressionConfig:
    enabled: bool = True
    target_reduction_percent: float = 30
    preserve_quality: bool = True
    min_quality_score: float = 0.7

    def __post_init__(self) -> None:
        if not 0 <= self.target_reduction_percent <= 100:
            raise ConfigError(
                "target_reduction_percent must be between 0 and 100, "
                f"got {self.target_reduction_percent}"
            )
        if not 0 <= self.min_quality_score <= 1:
            raise ConfigError(
                f"min_quality_score must be between 0 and 1, got {self.min_quality_score}"
            )


@dataclass(frozen=True)
class ChoiceConfig:
    enabled: bool = True
    max_choices: int = 3
    enforce_limit: bool = True
    options_per_choice: int = 3
    # Only a choice with exactly two parsed options is padded.
    pad_two_option_choices: bool = True

    def __post_init__(self) -> None:
        if self.max_choices not in (2, 3):
            raise ConfigError(f"max_choices must be 2 or 3, got {self.max_choices}")
        if self.options_per_choice not in (2, 3):
            raise ConfigError(
                f"options_per_choice must be 2 or 3, got {self.options_per_choice}"
            )


@dataclass(frozen=True)
class CostConfig:
    enabled: bool = True
    max_daily_cost: float | None = None
    preferred_provider: str = AUTO_PROVIDER

    def __post_init__(self) -> None:
        if self.preferred_provider not in (*KNOWN_PROVIDERS, AUTO_PROVIDER):
            raise ConfigError(
                f"preferred_provider must be one of {[*KNOWN_PROVIDERS, AUTO_PROVIDER]}, "
                f"got {self.preferred_provider!r}"
            )
        if self.max_daily_cost is not None and self.max_daily_cost < 0:
            raise ConfigError(f"max_daily_cost must be >= 0, got {self.max_daily_cost}")


@dataclass(frozen=True)
class ResponseGateConfig:
    min_content_length: int = 50
    required_markers: tuple[str, ...] = ()
    min_quality: float = 0.6

    def __post_init__(self) -> None:
        if self.min_content_length < 0:
            raise ConfigError(
                f"min_content_length must be >= 0, got {self.min_content_length}"
            )
        if not 0 <= self.min_quality <= 1:
            raise ConfigError(f"min_quality must be between 0 and 1, got {self.min_quality}")


@dataclass(frozen=True)
class OptimizationConfig:
    """Immutable configuration for one OptimizationService.

    Created once at startup and never mutated; use ``dataclasses.replace``
    (or :meth:`with_changes`) to build a new one for reconfiguration or tests.
    """

    cache: CacheConfig = field(default_factory=CacheConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    choices: ChoiceConfig = field(default_factory=ChoiceConfig)
    cost: CostConfig = field(default_factory=CostConfig)
    response_gate: ResponseGateConfig = field(default_factory=ResponseGateConfig)

    def with_changes(self, **changes) -> "OptimizationConfig":
        """Return a copy with whole sections replaced."""
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "OptimizationConfig":
        """Build the runtime config from environment settings.

        Raises:
            ConfigError: If the combined settings are inconsistent.
        """
        s = source or settings
        return cls(
            cache=CacheConfig(
                enabled=s.cache_enabled,
                memory_ttl_ms=s.cache_memory_ttl_ms,
                db_ttl_hours=s.cache_db_ttl_hours,
                max_memory_size=s.cache_max_memory_size,
                memory_enabled=True,
                persistent_enabled=s.cache_persistent_backend != "none",
                tier_timeout_ms=s.cache_tier_timeout_ms,
            ),
            compression=CompressionConfig(
                enabled=s.compression_enabled,
                target_reduction_percent=s.compression_target_reduction,
                preserve_quality=s.compression_preserve_quality,
                min_quality_score=s.compression_min_quality,
            ),
            choices=ChoiceConfig(
                enabled=s.choices_enabled,
                max_choices=s.choices_max,
                enforce_limit=s.choices_enforce_limit,
            ),
            cost=CostConfig(
                enabled=s.cost_enabled,
                max_daily_cost=s.cost_max_daily,
                preferred_provider=s.cost_preferred_provider,
            ),
            response_gate=ResponseGateConfig(min_content_length=s.response_min_length),
        )


DEFAULT_CONFIG = OptimizationConfig()

DEVELOPMENT_CONFIG = OptimizationConfig(
    cache=CacheConfig(memory_ttl_ms=30_000, db_ttl_hours=1, max_memory_size=50),
    compression=CompressionConfig(enabled=False, target_reduction_percent=0),
    choices=ChoiceConfig(max_choices=3, enforce_limit=False),
    cost=CostConfig(enabled=False, preferred_provider=PROVIDER_A),
)

PRODUCTION_CONFIG = OptimizationConfig(
    cache=CacheConfig(memory_ttl_ms=120_000, db_ttl_hours=48, max_memory_size=200),
    compression=CompressionConfig(target_reduction_percent=40),
    choices=ChoiceConfig(max_choices=3, enforce_limit=True),
    cost=CostConfig(max_daily_cost=10.0),
)

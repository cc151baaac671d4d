"""Narrative Optimizer - caching, compression and choice limiting for narrative generation.

This package sits between an application and a text-generation provider
and provides a layered architecture:

Layers:
    - protocols: Interface contracts (CacheTier, PersistentStore, TextProvider)
    - repositories: Cache tiers and persistent stores
    - services: Request pipeline and composite cache
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Subsystems:
    - compression: Token estimation and quality-gated prompt compression
    - choices: Choice extraction, scoring and limiting
    - cost: Cost estimation and daily budget

Usage:
    ```python
    from narrative_optimizer.services import OptimizationService

    service = OptimizationService.create({"providerA": provider})
    response = await service.generate(GenerationRequest(prompt="..."))
    ```

For HTTP API:
    ```python
    from narrative_optimizer.api.app import create_app

    app = create_app(service)
    ```
"""

from narrative_optimizer.config import (
    DEFAULT_CONFIG,
    DEVELOPMENT_CONFIG,
    PRODUCTION_CONFIG,
    OptimizationConfig,
    get_redis_client,
    settings,
)
from narrative_optimizer.errors import (
    BudgetExceededError,
    CacheError,
    ConfigError,
    OptimizerError,
    ProviderError,
)
from narrative_optimizer.models import (
    CachedResponse,
    GenerationRequest,
    OptimizedResponse,
    ProviderResult,
    StoryPreferences,
    TokenUsage,
)
from narrative_optimizer.protocols import CacheTier, PersistentStore, TextProvider
from narrative_optimizer.repositories import (
    InMemoryPersistentStore,
    MemoryCacheTier,
    PersistentCacheTier,
    RedisPersistentStore,
)
from narrative_optimizer.services import (
    CompositeCache,
    OptimizationService,
    get_default_service,
    reset_default_service,
    set_default_service,
)

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    "OptimizationConfig",
    "DEFAULT_CONFIG",
    "DEVELOPMENT_CONFIG",
    "PRODUCTION_CONFIG",
    # Errors
    "OptimizerError",
    "ProviderError",
    "BudgetExceededError",
    "ConfigError",
    "CacheError",
    # Models
    "CachedResponse",
    "GenerationRequest",
    "OptimizedResponse",
    "ProviderResult",
    "StoryPreferences",
    "TokenUsage",
    # Protocols (interfaces)
    "CacheTier",
    "PersistentStore",
    "TextProvider",
    # Repositories (data access)
    "InMemoryPersistentStore",
    "MemoryCacheTier",
    "PersistentCacheTier",
    "RedisPersistentStore",
    # Services (business logic)
    "CompositeCache",
    "OptimizationService",
    "get_default_service",
    "reset_default_service",
    "set_default_service",
]

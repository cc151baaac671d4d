"""Service layer for business logic.

This layer contains the request pipeline and the cache orchestration it
relies on. Services depend on protocols (interfaces), not concrete
implementations, making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from narrative_optimizer.services import OptimizationService

    # Using factory method (config from environment)
    service = OptimizationService.create({"providerA": provider})

    # Or manual creation
    service = OptimizationService({"providerA": provider}, config=DEVELOPMENT_CONFIG)
    ```
"""

from .composite_cache import CacheLookup, CompositeCache, create_cache
from .fingerprint import (
    build_fingerprint,
    context_digest,
    normalize_prompt,
    prior_choice_digest,
)
from .optimization_service import (
    OptimizationService,
    get_default_service,
    reset_default_service,
    set_default_service,
)
from .response_gate import GateResult, ResponseQualityGate

__all__ = [
    "CacheLookup",
    "CompositeCache",
    "create_cache",
    "build_fingerprint",
    "context_digest",
    "normalize_prompt",
    "prior_choice_digest",
    "OptimizationService",
    "get_default_service",
    "reset_default_service",
    "set_default_service",
    "GateResult",
    "ResponseQualityGate",
]

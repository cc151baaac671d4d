"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from narrative_optimizer.models import CacheStats, OptimizedResponse

# The pipeline's output contract is already the API contract
GenerateResponse = OptimizedResponse


class StatsResponse(BaseModel):
    """Response DTO for optimization statistics."""

    cache: CacheStats | None = Field(None, description="Summed cache tier counters")
    performance: dict[str, float | int] = Field(
        default_factory=dict,
        description="Lookup and provider timings, savings",
    )
    compression: dict[str, Any] = Field(default_factory=dict)
    choices: dict[str, Any] = Field(default_factory=dict)
    budget: dict[str, Any] | None = Field(None, description="Today's spend against the budget")


class ClearCacheResponse(BaseModel):
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether every cache tier is reachable")
    providers: list[str] = Field(default_factory=list, description="Registered provider names")

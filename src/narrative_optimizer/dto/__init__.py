"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import GenerateRequest, GenerateStoryRequest
from .responses import ClearCacheResponse, GenerateResponse, HealthCheckResponse, StatsResponse

__all__ = [
    "GenerateRequest",
    "GenerateStoryRequest",
    "GenerateResponse",
    "StatsResponse",
    "ClearCacheResponse",
    "HealthCheckResponse",
]

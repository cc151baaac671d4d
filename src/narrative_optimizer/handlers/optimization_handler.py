"""HTTP handlers for optimization operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging
from collections.abc import Awaitable

from fastapi import HTTPException, status

from narrative_optimizer.dto import (
    ClearCacheResponse,
    GenerateRequest,
    GenerateResponse,
    GenerateStoryRequest,
    HealthCheckResponse,
    StatsResponse,
)
from narrative_optimizer.errors import BudgetExceededError, ProviderError
from narrative_optimizer.models import GenerationRequest, OptimizedResponse
from narrative_optimizer.services import OptimizationService

logger = logging.getLogger(__name__)


class OptimizationHandler:
    """HTTP handlers for the optimization pipeline.

    This handler delegates business logic to OptimizationService and maps
    its errors to status codes:
    - BudgetExceededError -> 429
    - ProviderError -> 502
    - anything else -> 500

    Example:
        ```python
        handler = OptimizationHandler(service=service)

        @app.post("/generate", response_model=GenerateResponse)
        async def generate(request: GenerateRequest):
            return await handler.generate(request)
        ```
    """

    def __init__(self, service: OptimizationService) -> None:
        """Initialize the handler.

        Args:
            service: The optimization service for business logic (required).
        """
        self._service = service

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Handle POST /generate requests.

        Raises:
            HTTPException: If the provider fails or the budget is exhausted
        """
        generation = GenerationRequest(
            prompt=request.prompt,
            preferences=request.preferences,
            prior_choices=request.prior_choices,
            compress=request.compress,
            location=request.location,
            context=request.context,
        )
        return await self._run(
            self._service.generate(generation, timeout=request.timeout_seconds)
        )

    async def generate_story(self, request: GenerateStoryRequest) -> GenerateResponse:
        """Handle POST /generate/story requests."""
        return await self._run(
            self._service.generate_story(
                request.segments,
                request.preferences,
                prior_choices=request.prior_choices,
                location=request.location,
                compact=request.compact,
                compress=request.compress,
                timeout=request.timeout_seconds,
            )
        )

    async def get_stats(self) -> StatsResponse:
        try:
            stats = await self._service.stats()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e
        return StatsResponse(**stats.model_dump())

    async def clear_cache(self) -> ClearCacheResponse:
        try:
            await self._service.clear_cache()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to clear cache: {e}",
            ) from e
        return ClearCacheResponse(success=True, message="Cache cleared successfully")

    async def health_check(self) -> HealthCheckResponse:
        is_healthy = await self._service.is_healthy()
        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            cache_healthy=is_healthy,
            providers=list(self._service.providers),
        )

    async def _run(self, call: Awaitable[OptimizedResponse]) -> OptimizedResponse:
        try:
            return await call
        except BudgetExceededError as e:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=str(e),
            ) from e
        except ProviderError as e:
            logger.warning("Provider call failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(e),
            ) from e
        except Exception as e:
            logger.exception("Generation failed")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Generation failed: {e}",
            ) from e

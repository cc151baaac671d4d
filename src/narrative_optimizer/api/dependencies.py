"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from narrative_optimizer.handlers import OptimizationHandler
from narrative_optimizer.services import OptimizationService, get_default_service

logger = logging.getLogger(__name__)


def get_optimization_service(request: Request) -> OptimizationService:
    """Dependency injection for OptimizationService from app.state.

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "optimization_service", None)
    if service is None:
        raise RuntimeError("OptimizationService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> OptimizationHandler:
    """Dependency injection for OptimizationHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "optimization_handler", None)
    if handler is None:
        raise RuntimeError("OptimizationHandler not initialized. Check lifespan setup.")
    return handler


def build_lifespan(service: OptimizationService | None = None):
    """Create the lifespan context manager for one app.

    Args:
        service: Service to serve. If None, uses the process-wide default.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Store the service and handler in app.state for the app's lifetime."""
        optimization_service = service or get_default_service()
        app.state.optimization_service = optimization_service
        app.state.optimization_handler = OptimizationHandler(service=optimization_service)

        config = optimization_service.config
        logger.info(
            "Optimization service ready: providers=%s cache_tiers=%s compression=%s max_choices=%d",
            list(optimization_service.providers),
            [tier.name for tier in optimization_service.cache.tiers],
            config.compression.enabled,
            config.choices.max_choices,
        )

        yield

        del app.state.optimization_handler
        del app.state.optimization_service
        logger.info("Optimization service shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[OptimizationHandler, Depends(get_handler)]
ServiceDep = Annotated[OptimizationService, Depends(get_optimization_service)]

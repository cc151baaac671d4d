"""FastAPI application factory.

The text-generation provider is supplied by the embedding application, so
there is no module-level app: build one with ``create_app(service)``.
"""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from narrative_optimizer.dto import (
    ClearCacheResponse,
    GenerateRequest,
    GenerateResponse,
    GenerateStoryRequest,
    HealthCheckResponse,
    StatsResponse,
)
from narrative_optimizer.services import OptimizationService

from .dependencies import HandlerDep, ServiceDep, build_lifespan

API_VERSION = "0.1.0"


def create_app(service: OptimizationService | None = None) -> FastAPI:
    """Build the HTTP API around an optimization service.

    Args:
        service: Service to serve. If None, uses the process-wide default
            (see ``set_default_service``).

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Narrative Optimizer API",
        description="Caching, prompt compression and choice limiting for narrative generation",
        version=API_VERSION,
        lifespan=build_lifespan(service),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root(optimization_service: ServiceDep) -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Narrative Optimizer API",
            "version": API_VERSION,
            "providers": list(optimization_service.providers),
            "endpoints": {
                "generate": "/generate",
                "story": "/generate/story",
                "stats": "/stats",
                "cache": "/cache",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        return await handler.health_check()

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(request: GenerateRequest, handler: HandlerDep) -> GenerateResponse:
        """Run a prompt through cache, compression, provider and choice limiting."""
        return await handler.generate(request)

    @app.post("/generate/story", response_model=GenerateResponse)
    async def generate_story(request: GenerateStoryRequest, handler: HandlerDep) -> GenerateResponse:
        """Build the structured story prompt from prior segments and generate."""
        return await handler.generate_story(request)

    @app.get("/stats", response_model=StatsResponse)
    async def get_stats(handler: HandlerDep) -> StatsResponse:
        return await handler.get_stats()

    @app.delete("/cache", response_model=ClearCacheResponse)
    async def clear_cache(handler: HandlerDep) -> ClearCacheResponse:
        """Clear all cache tiers."""
        return await handler.clear_cache()

    return app

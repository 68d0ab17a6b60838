"""
Liveness probe.

Reports the running version and environment plus the storage backend
and the collections mounted on it. Never touches the store itself.
"""

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel
from slowapi import Limiter

from recordapi.shared.security.rate_limiting import DEFAULT_RATE_LIMIT, limit_route


class HealthResponse(BaseModel):
    """Body of ``GET /health``."""

    status: str
    version: str
    environment: str
    storage: str
    collections: list[str]


def build_health_router(
    limiter: Optional[Limiter] = None, rate_limit: str = DEFAULT_RATE_LIMIT
) -> APIRouter:
    """Build the health router, limited like every other route."""
    router = APIRouter(tags=["health"])

    @router.get(
        "/health",
        response_model=HealthResponse,
        summary="Health check",
        description="Returns version, environment and the mounted collections.",
    )
    @limit_route(limiter, rate_limit, scope="health")
    async def health_check(request: Request) -> HealthResponse:
        settings = request.app.state.settings
        registry = request.app.state.registry
        return HealthResponse(
            status="ok",
            version=settings.version,
            environment=settings.environment,
            storage=settings.storage_backend,
            collections=registry.names(),
        )

    return router

"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (health plus one per collection)
- Error handlers (centralized failure normalization)
- Rate limiting
- Logging configuration
- Storage backend lifecycle

No business logic belongs here.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from recordapi.core.config import Settings, settings as default_settings
from recordapi.infrastructure.companies.documents import COMPANY_DESCRIPTOR, metadata
from recordapi.infrastructure.records.base import CollectionRegistry
from recordapi.interfaces.companies.router import build_companies_router
from recordapi.interfaces.dependencies import build_controller, build_engine, build_registry
from recordapi.interfaces.health import build_health_router
from recordapi.shared.errors.handlers import register_error_handlers
from recordapi.shared.errors.normalizer import ErrorNormalizer
from recordapi.shared.logging import configure_logging
from recordapi.shared.security.rate_limiting import build_limiter


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[CollectionRegistry] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and rate limiting.
    This is the composition root of the application.

    Args:
        settings: Settings override. Defaults to the environment settings.
        registry: Pre-built collections. Defaults to the configured backend.

    Returns:
        A fully configured FastAPI application instance.
    """
    settings = settings or default_settings
    configure_logging(level=settings.get_log_level(), development=settings.is_development)

    engine = None
    if registry is None:
        engine = build_engine(settings) if settings.storage_backend == "sql" else None
        registry = build_registry(settings, engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Create SQL tables on startup and release the pool on shutdown."""
        if engine is not None:
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry

    # --- Rate Limiting ---
    limiter = build_limiter(settings)
    app.state.limiter = limiter

    # --- Error Handlers ---
    register_error_handlers(app, ErrorNormalizer(settings.environment))

    # --- Routers ---
    companies = build_controller(registry, COMPANY_DESCRIPTOR.name, settings)
    limit = settings.rate_limit_default
    app.include_router(build_health_router(limiter, limit), prefix=settings.api_prefix)
    app.include_router(
        build_companies_router(companies, limiter, limit), prefix=settings.api_prefix
    )

    return app


app = create_app()

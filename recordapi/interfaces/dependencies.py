"""
Composition of storage adapters and controllers.

Builds the collection registry for the configured storage backend and
one controller per collection. This is the composition root for the
records context.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from recordapi.application.records.controller import RecordController
from recordapi.application.records.query_plan import QueryPlanBuilder
from recordapi.core.config import Settings
from recordapi.domain.records.ports import RecordCollection
from recordapi.infrastructure.companies.documents import COMPANY_DESCRIPTOR, companies_table
from recordapi.infrastructure.records.base import CollectionRegistry
from recordapi.infrastructure.records.memory_collection import InMemoryCollection
from recordapi.infrastructure.records.sql_collection import SqlAlchemyCollection

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """Build an async SQLAlchemy engine from application settings."""
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def build_registry(settings: Settings, engine: Optional[AsyncEngine] = None) -> CollectionRegistry:
    """Register every collection on the configured storage backend.

    Args:
        settings: Application settings.
        engine: Async engine; required for the ``sql`` backend.

    Returns:
        The populated collection registry.
    """
    registry = CollectionRegistry()
    companies: RecordCollection
    if settings.storage_backend == "sql":
        if engine is None:
            raise ValueError("The sql storage backend requires a database engine")
        companies = SqlAlchemyCollection(engine, companies_table, COMPANY_DESCRIPTOR, registry)
    else:
        companies = InMemoryCollection(COMPANY_DESCRIPTOR, registry)
    registry.register(companies)
    logger.info("Storage backend: %s", settings.storage_backend)
    return registry


def build_controller(
    registry: CollectionRegistry, name: str, settings: Settings
) -> RecordController:
    """Build the controller for one registered collection."""
    collection = registry.get(name)
    if collection is None:
        raise KeyError(f"Collection not registered: {name}")
    return RecordController(
        collection,
        QueryPlanBuilder(reserved_params=settings.reserved_query_params),
    )

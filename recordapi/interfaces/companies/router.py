"""
FastAPI router for the companies collection.

Mounts the generic CRUD routes with the company request schemas.
"""

from typing import Optional

from fastapi import APIRouter
from slowapi import Limiter

from recordapi.application.records.controller import RecordController
from recordapi.interfaces.companies.schemas import CompanyCreate, CompanyUpdate
from recordapi.interfaces.records.router import build_record_router
from recordapi.shared.security.rate_limiting import DEFAULT_RATE_LIMIT


def build_companies_router(
    controller: RecordController,
    limiter: Optional[Limiter] = None,
    rate_limit: str = DEFAULT_RATE_LIMIT,
) -> APIRouter:
    """Build the /companies router around a controller."""
    return build_record_router(
        controller,
        prefix="/companies",
        create_schema=CompanyCreate,
        update_schema=CompanyUpdate,
        tags=["companies"],
        limiter=limiter,
        rate_limit=rate_limit,
    )

"""
Generic FastAPI router for one record collection.

All routes delegate to a RecordController. No business logic here.
Bodies are validated by ``validate_request`` when a schema is given.
Error mapping is handled by centralized error handlers.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import Limiter

from recordapi.application.records.controller import RecordController
from recordapi.application.records.dtos import OperationResult
from recordapi.application.records.query_plan import ParamValue
from recordapi.interfaces.validation import read_json_body, validate_request
from recordapi.shared.envelope import ErrorEnvelope, SuccessEnvelope, success_body
from recordapi.shared.errors.validation import RequestValidationFailure
from recordapi.shared.security.rate_limiting import DEFAULT_RATE_LIMIT, limit_route

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorEnvelope},
    422: {"model": ErrorEnvelope},
}
NOT_FOUND_RESPONSES: dict[int | str, dict[str, Any]] = {
    **ERROR_RESPONSES,
    404: {"model": ErrorEnvelope},
}


def respond(result: OperationResult) -> JSONResponse:
    """Wrap a controller result in a success envelope."""
    return JSONResponse(
        status_code=result.status,
        content=success_body(
            code=result.status,
            message=result.message,
            data=result.data,
            count=result.count,
            total=result.total,
        ),
    )


def query_params(request: Request) -> dict[str, ParamValue]:
    """Collect query parameters, keeping repeated keys as lists."""
    params: dict[str, ParamValue] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        params[key] = values[0] if len(values) == 1 else values
    return params


async def raw_body(request: Request) -> dict[str, Any]:
    """Unvalidated JSON object body, for collections without a schema."""
    payload = await read_json_body(request)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise RequestValidationFailure(
            [{"loc": ("body",), "msg": "Body must be a JSON object", "type": "model_type"}]
        )
    return payload


async def optional_body(request: Request) -> Optional[dict[str, Any]]:
    """Body directives of a read request; anything unreadable is ignored."""
    try:
        payload = await read_json_body(request)
    except RequestValidationFailure:
        return None
    return payload if isinstance(payload, dict) else None


def build_record_router(
    controller: RecordController,
    prefix: str,
    create_schema: Optional[type[BaseModel]] = None,
    update_schema: Optional[type[BaseModel]] = None,
    tags: Optional[list[str]] = None,
    limiter: Optional[Limiter] = None,
    rate_limit: str = DEFAULT_RATE_LIMIT,
) -> APIRouter:
    """Build the five CRUD routes for one collection.

    Args:
        controller: Controller bound to the collection.
        prefix: Route prefix, e.g. ``/companies``.
        create_schema: Optional model validating creation bodies.
        update_schema: Optional model validating update bodies.
        tags: OpenAPI tags. Defaults to the collection name.
        limiter: Application limiter. ``None`` leaves the routes unlimited.
        rate_limit: Per-client limit applied to every route.

    Returns:
        A router ready to be included in the application.
    """
    router = APIRouter(prefix=prefix, tags=tags or [controller.descriptor.name])
    create_body = validate_request(create_schema) if create_schema else raw_body
    update_body = validate_request(update_schema) if update_schema else raw_body
    name = controller.descriptor.name
    limited = limit_route(limiter, rate_limit, scope=name)

    @router.post(
        "",
        status_code=201,
        response_model=SuccessEnvelope,
        responses=ERROR_RESPONSES,
        summary=f"Create a {name} record",
    )
    @limited
    async def create_record(
        request: Request,
        payload: dict[str, Any] = Depends(create_body),
    ) -> JSONResponse:
        """Create a new record."""
        return respond(await controller.create(payload))

    @router.get(
        "",
        response_model=SuccessEnvelope,
        responses=ERROR_RESPONSES,
        summary=f"List {name} records",
        description=(
            "Query: page, perPage, query, asc, dsc, fields, plus any field "
            "filter. Body (optional): populateMap."
        ),
    )
    @limited
    async def list_records(request: Request) -> JSONResponse:
        """List records with pagination, sorting, projection and search."""
        body = await optional_body(request)
        return respond(await controller.list(query_params(request), body))

    @router.get(
        "/{record_id}",
        response_model=SuccessEnvelope,
        responses=NOT_FOUND_RESPONSES,
        summary=f"Get a {name} record",
    )
    @limited
    async def get_record(
        request: Request, record_id: str, populate: Optional[str] = None
    ) -> JSONResponse:
        """Fetch one record, optionally expanding comma-separated references."""
        return respond(await controller.get(record_id, populate))

    @router.api_route(
        "/{record_id}",
        methods=["PATCH", "PUT"],
        response_model=SuccessEnvelope,
        responses=NOT_FOUND_RESPONSES,
        summary=f"Update a {name} record",
    )
    @limited
    async def update_record(
        request: Request,
        record_id: str,
        payload: dict[str, Any] = Depends(update_body),
    ) -> JSONResponse:
        """Update fields of an existing record."""
        return respond(await controller.update(record_id, payload))

    @router.delete(
        "/{record_id}",
        response_model=SuccessEnvelope,
        responses=NOT_FOUND_RESPONSES,
        summary=f"Delete a {name} record",
    )
    @limited
    async def delete_record(request: Request, record_id: str) -> JSONResponse:
        """Delete a record."""
        return respond(await controller.delete(record_id))

    return router

"""
Request body validation.

``validate_request(schema)`` builds a FastAPI dependency that validates
the JSON body against a pydantic model before the route runs. Unknown
keys are dropped; on failure a ``RequestValidationFailure`` (422) with
one entry per problem, each with a suggestion, plus a summary
``suggestedFix`` is raised for the centralized error handlers. An
optional context schema checks path parameters and headers first.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from recordapi.shared.errors.validation import RequestValidationFailure

logger = logging.getLogger(__name__)

HTTP_400 = 400

# Body keys that are instructions to the controller, not record fields
BODY_DIRECTIVES = ("populateMap",)

ERROR_CODES = {
    "missing": "REQUIRED_FIELD",
    "string_too_short": "MIN_LENGTH",
    "string_too_long": "MAX_LENGTH",
    "string_pattern_mismatch": "INVALID_FORMAT",
    "enum": "INVALID_VALUE",
    "literal_error": "INVALID_VALUE",
    "too_short": "MISSING_FIELDS",
}
DEFAULT_ERROR_CODE = "VALIDATION_ERROR"

SUGGESTIONS = {
    "missing": "This field is required",
    "string_pattern_mismatch": "Check the format of this value",
    "enum": "Use one of the allowed values",
    "literal_error": "Use one of the allowed values",
}
DEFAULT_SUGGESTION = "Please check the field value"


def error_code(error: dict[str, Any]) -> str:
    """Map a pydantic error to a stable client-facing code."""
    if error.get("type") == "string_too_short" and error.get("input") == "":
        return "EMPTY_FIELD"
    return ERROR_CODES.get(error.get("type", ""), DEFAULT_ERROR_CODE)


async def read_json_body(request: Request) -> Any:
    """Return the decoded JSON body, or None when the body is empty.

    Raises:
        RequestValidationFailure: If the body is not valid JSON.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise RequestValidationFailure(
            [{"loc": ("body",), "msg": "Malformed JSON body", "type": "json_invalid"}],
            status_code=HTTP_400,
        ) from exc


def suggestion_for(error: dict[str, Any]) -> str:
    """A short hint telling the client how to fix one problem."""
    if error.get("type") == "string_too_short" and error.get("input") == "":
        return "Please provide a value for this field"
    return SUGGESTIONS.get(error.get("type", ""), DEFAULT_SUGGESTION)


def suggested_fix(details: list[dict[str, Any]]) -> str:
    """Summarize the most common fix across all problems."""
    types = [detail["type"] for detail in details]
    if "missing" in types:
        return "Missing required fields detected"
    if any(kind.startswith("string_") for kind in types):
        return "Text format issues detected"
    return "Review all highlighted fields"


def _failure(
    exc: PydanticValidationError, locate: Callable[[tuple[Any, ...]], str]
) -> RequestValidationFailure:
    details = [
        {
            "loc": (locate(error["loc"]), *error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
            "code": error_code(error),
            "suggestion": suggestion_for(error),
        }
        for error in exc.errors()
    ]
    return RequestValidationFailure(details, metadata={"suggestedFix": suggested_fix(details)})


def _fields(failure: RequestValidationFailure) -> list[str]:
    return [".".join(str(part) for part in d["loc"][1:]) or d["loc"][0] for d in failure.errors()]


def validate_request(
    schema: type[BaseModel],
    context_schema: Optional[type[BaseModel]] = None,
) -> Callable[[Request], Awaitable[dict[str, Any]]]:
    """Build a dependency validating the request body against ``schema``.

    Args:
        schema: Pydantic model describing the accepted payload.
        context_schema: Optional model checked first against the path
            parameters and headers of the request.

    Returns:
        A FastAPI dependency returning the validated fields that the
        caller actually sent, plus any body directives.
    """

    async def dependency(request: Request) -> dict[str, Any]:
        if context_schema is not None:
            context = {**request.path_params, **request.headers}
            try:
                context_schema.model_validate(context)
            except PydanticValidationError as exc:
                failure = _failure(
                    exc,
                    lambda loc: "path" if loc and loc[0] in request.path_params else "header",
                )
                logger.warning(
                    "Context validation failed on %s: %s", request.url.path, _fields(failure)
                )
                raise failure from exc

        payload = await read_json_body(request)
        if payload is None:
            payload = {}
        try:
            model = schema.model_validate(payload)
        except PydanticValidationError as exc:
            failure = _failure(exc, lambda loc: "body")
            logger.warning("Validation failed on %s: %s", request.url.path, _fields(failure))
            raise failure from exc

        validated = model.model_dump(mode="json", exclude_unset=True)
        if isinstance(payload, dict):
            for key in BODY_DIRECTIVES:
                if key in payload:
                    validated[key] = payload[key]
        return validated

    return dependency

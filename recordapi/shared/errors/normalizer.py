"""
Error normalization.

Classifies any raised failure into one ``ErrorValue`` and renders it as
an error envelope. Pure classification per call; the only state is the
redaction mode chosen at construction.

Classification order (first match wins):
    1. Schema validation failure (field -> reason mapping)  -> 400
    2. Request validation failure (per-location details)    -> status or 400
    3. ApiError                                              -> unchanged
    4. Anything else                                         -> own status or 500
"""

import logging
import re
import traceback
from typing import Any, Mapping, Optional

from recordapi.domain.records.errors import (
    ApiError,
    ErrorValue,
    FieldError,
    InternalError,
    RateLimitError,
    SchemaValidationError,
)
from recordapi.shared.constants import ErrorMessage, default_message_for

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def strip_punctuation(message: str) -> str:
    return _NON_WORD.sub("", message)


def _status_of(exc: BaseException, default: int) -> int:
    for attribute in ("status_code", "status"):
        status = getattr(exc, attribute, None)
        if isinstance(status, int) and 100 <= status <= 599:
            return status
    return default


def _flatten(details: Any) -> list[FieldError]:
    """Flatten structured validation details into field errors.

    Each detail carries a ``loc`` whose first element names the location
    group (body, query, path, header) when present.
    """
    errors = []
    for detail in details or ():
        location_path = [str(part) for part in detail.get("loc") or ()]
        if location_path and location_path[0] in _LOCATIONS:
            location, field_path = location_path[0], location_path[1:]
        else:
            location, field_path = "body", location_path
        errors.append(
            FieldError(
                field=".".join(field_path) or "unknown",
                message=strip_punctuation(str(detail.get("msg", ErrorMessage.INVALID_FIELD.value))),
                location=location,
                type=detail.get("type"),
                code=detail.get("code"),
                suggestion=detail.get("suggestion"),
            )
        )
    return errors


class ErrorNormalizer:
    """Turns failures into ErrorValues and error envelopes.

    Args:
        environment: ``development`` attaches diagnostics to every error;
            ``production`` redacts server errors and never emits
            diagnostics; any other value does neither.
    """

    def __init__(self, environment: str) -> None:
        self.environment = environment

    @property
    def development(self) -> bool:
        return self.environment == "development"

    @property
    def production(self) -> bool:
        return self.environment == "production"

    def classify(self, exc: BaseException) -> ErrorValue:
        """Convert a failure into an ErrorValue without diagnostics."""
        if isinstance(exc, SchemaValidationError):
            return ErrorValue(
                message=ErrorMessage.VALIDATION.value,
                status=400,
                errors=tuple(
                    FieldError(field=name, message=reason, type=exc.kinds.get(name))
                    for name, reason in exc.reasons.items()
                ),
            )

        details = getattr(exc, "errors", None)
        if callable(details):
            metadata = getattr(exc, "metadata", None)
            return ErrorValue(
                message=ErrorMessage.VALIDATION.value,
                status=_status_of(exc, 400),
                errors=tuple(_flatten(details())),
                metadata=metadata if isinstance(metadata, Mapping) else {},
            )

        if isinstance(exc, ApiError):
            return exc.value

        status = _status_of(exc, 500)
        message = getattr(exc, "detail", None)
        if not isinstance(message, str) or not message:
            message = str(exc) or default_message_for(status)
        error_class = InternalError if status >= 500 else ApiError
        return error_class(message, status).value

    def normalize(
        self,
        exc: BaseException,
        path: Optional[str] = None,
        method: Optional[str] = None,
    ) -> ErrorValue:
        """Classify a failure and, in development, attach diagnostics."""
        value = self.classify(exc)
        if value.status >= 500:
            logger.error(
                "Unhandled %s on %s %s", type(exc).__name__, method, path, exc_info=exc
            )
        else:
            logger.info("%s on %s %s -> %d", type(exc).__name__, method, path, value.status)

        if not self.development:
            return value
        return value.with_details(
            stack="".join(traceback.format_exception(exc)),
            type=type(exc).__name__,
            path=path,
            method=method,
        )

    def rate_limited(
        self,
        counters: Optional[Mapping[str, int]] = None,
        path: Optional[str] = None,
        method: Optional[str] = None,
    ) -> ErrorValue:
        """Error for an exceeded rate limit (429)."""
        logger.warning("Rate limit exceeded on %s %s", method, path)
        value = RateLimitError().value
        if self.development:
            value = value.with_details(path=path, method=method, **dict(counters or {}))
        return value

    def route_not_found(self, path: Optional[str] = None, method: Optional[str] = None) -> ErrorValue:
        """Error for a request that matched no route (404)."""
        value = ErrorValue(message=ErrorMessage.NOT_FOUND.value, status=404)
        if self.development:
            value = value.with_details(path=path, method=method)
        return value

    def to_envelope(self, value: ErrorValue) -> dict[str, Any]:
        """Render an ErrorValue as an error envelope, redacting last."""
        body: dict[str, Any] = {
            "success": False,
            "code": value.status,
            "message": value.message,
        }
        if value.errors:
            body["errors"] = [error.to_dict() for error in value.errors]
        if value.metadata:
            body["metadata"] = dict(value.metadata)

        if self.production:
            if value.status >= 500:
                body["message"] = ErrorMessage.INTERNAL_SERVER_ERROR.value
                body.pop("errors", None)
                body.pop("metadata", None)
        elif self.development:
            for key, detail in value.details.items():
                body.setdefault(key, detail)
        return body

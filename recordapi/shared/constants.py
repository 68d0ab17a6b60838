"""
Process-wide message and status tables.

Loaded once at import time and never mutated. Every success and error
message that reaches a client comes from here.
"""

from enum import Enum
from http import HTTPStatus
from types import MappingProxyType

OPERATOR_PREFIX = "$"

# Query keys that drive the plan itself and never become filter conditions
CONTROL_QUERY_PARAMS = ("page", "perPage", "asc", "dsc", "fields", "query")

DEFAULT_PAGE = 1


class SuccessMessage(str, Enum):
    """Messages attached to successful envelopes."""

    CREATED = "Resource created successfully"
    UPDATED = "Resource updated successfully"
    DELETED = "Resource deleted successfully"
    RETRIEVED = "Resource retrieved successfully"


class ErrorMessage(str, Enum):
    """Messages attached to error envelopes."""

    DEFAULT = "An error occurred"
    INTERNAL_SERVER_ERROR = "Internal Server Error"
    VALIDATION = "Validation Error"
    INVALID_FIELD = "Invalid field"
    MISSING_FIELDS = "Required fields are missing"
    NOT_FOUND = "Resource not found"
    RATE_LIMIT = "Too many requests"
    METHOD_NOT_ALLOWED = "Method not allowed"
    SERVICE_DOWN = "Service temporarily unavailable"


STATUS_TO_DEFAULT_MESSAGE = MappingProxyType(
    {
        HTTPStatus.BAD_REQUEST: ErrorMessage.VALIDATION,
        HTTPStatus.NOT_FOUND: ErrorMessage.NOT_FOUND,
        HTTPStatus.METHOD_NOT_ALLOWED: ErrorMessage.METHOD_NOT_ALLOWED,
        HTTPStatus.UNPROCESSABLE_ENTITY: ErrorMessage.VALIDATION,
        HTTPStatus.TOO_MANY_REQUESTS: ErrorMessage.RATE_LIMIT,
        HTTPStatus.INTERNAL_SERVER_ERROR: ErrorMessage.DEFAULT,
        HTTPStatus.SERVICE_UNAVAILABLE: ErrorMessage.SERVICE_DOWN,
    }
)


def default_message_for(status: int) -> str:
    """Return the default client message for a status code."""
    message = STATUS_TO_DEFAULT_MESSAGE.get(status, ErrorMessage.DEFAULT)
    return message.value

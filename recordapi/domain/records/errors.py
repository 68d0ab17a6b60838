"""
Error taxonomy for the records bounded context.

``ApiError`` and its subclasses are the only failures a client ever sees
described; they are converted to envelopes by the shared error handlers.
``UniqueConstraintViolation`` and ``SchemaValidationError`` are raised by
storage adapters and never leave the service in their raw form.
No framework imports allowed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from recordapi.shared.constants import ErrorMessage


@dataclass(frozen=True)
class FieldError:
    """A single field-level problem inside an error envelope."""

    field: str
    message: str
    location: str = "body"
    type: Optional[str] = None
    code: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        data = {"field": self.field, "message": self.message, "location": self.location}
        if self.type:
            data["type"] = self.type
        if self.code:
            data["code"] = self.code
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ErrorValue:
    """Uniform, immutable description of a failure.

    Attributes:
        message: Human readable summary.
        status: HTTP status code (100-599).
        errors: Field-level sub-errors, or None.
        timestamp: Creation time (UTC).
        details: Diagnostic annotations (stack, type, path, counters).
        metadata: Client-facing hints, e.g. a suggested fix.
    """

    message: str
    status: int
    errors: Optional[tuple[FieldError, ...]] = None
    timestamp: datetime = field(default_factory=_utcnow)
    details: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 100 <= self.status <= 599:
            raise ValueError(f"Invalid HTTP status: {self.status}")
        if self.errors is not None:
            object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def with_details(self, **details: Any) -> "ErrorValue":
        """Return a copy with extra diagnostic annotations merged in."""
        merged = {**self.details, **{k: v for k, v in details.items() if v is not None}}
        return ErrorValue(
            message=self.message,
            status=self.status,
            errors=self.errors,
            timestamp=self.timestamp,
            details=merged,
            metadata=self.metadata,
        )


class ApiError(Exception):
    """Base failure carrying one ErrorValue."""

    default_message: str = ErrorMessage.DEFAULT.value
    default_status: int = 500

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        errors: Optional[Iterable[FieldError]] = None,
        **details: Any,
    ) -> None:
        status = status or self.default_status
        self.value = ErrorValue(
            message=message or self.default_message,
            status=status,
            errors=tuple(errors) if errors is not None else None,
            details=details,
        )
        super().__init__(self.value.message)

    @property
    def message(self) -> str:
        return self.value.message

    @property
    def status(self) -> int:
        return self.value.status

    @property
    def errors(self) -> Optional[tuple[FieldError, ...]]:
        return self.value.errors

    @property
    def timestamp(self) -> datetime:
        return self.value.timestamp

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs and debugging."""
        return {
            "error": {
                "name": type(self).__name__,
                "message": self.message,
                "status": self.status,
                "errors": [e.to_dict() for e in self.errors] if self.errors else None,
                "timestamp": self.timestamp.isoformat(),
            }
        }


class ValidationError(ApiError):
    """Schema-level or request-level validation failure."""

    default_message = ErrorMessage.VALIDATION.value
    default_status = 400


class NotFoundError(ApiError):
    """Raised when no record matches an identifier."""

    default_message = ErrorMessage.NOT_FOUND.value
    default_status = 404


class DuplicateKeyError(ValidationError):
    """A uniqueness conflict converted into field-scoped errors."""

    @classmethod
    def for_fields(cls, fields: Iterable[str]) -> "DuplicateKeyError":
        return cls(
            errors=[
                FieldError(field=name, message=f"{title_case(name)} already in use.")
                for name in fields
            ]
        )


class RateLimitError(ApiError):
    """Raised when a client exceeds its rate limit."""

    default_message = ErrorMessage.RATE_LIMIT.value
    default_status = 429


class InternalError(ApiError):
    """Unexpected server-side failure. Redacted in production."""

    default_message = ErrorMessage.INTERNAL_SERVER_ERROR.value
    default_status = 500


class UniqueConstraintViolation(Exception):
    """Storage-level signal: a write collided with a unique field.

    Attributes:
        fields: Names of the conflicting unique fields, in declaration order.
    """

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = tuple(fields)
        super().__init__(f"Unique constraint violated on: {', '.join(self.fields)}")


class SchemaValidationError(Exception):
    """Storage-level signal: a document failed schema validation.

    Attributes:
        reasons: Mapping of field name to failure reason.
        kinds: Mapping of field name to failure kind (e.g. ``missing``).
    """

    def __init__(
        self,
        reasons: Mapping[str, str],
        kinds: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.reasons = dict(reasons)
        self.kinds = dict(kinds or {})
        super().__init__(f"Schema validation failed for: {', '.join(self.reasons)}")


def title_case(name: str) -> str:
    """Turn a snake_case field name into a title-cased label.

    >>> title_case("company_name")
    'Company Name'
    """
    return " ".join(word.capitalize() for word in name.lower().split("_"))

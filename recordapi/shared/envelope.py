"""
Response envelopes.

Every response, success or failure, is one of these two shapes with a
``code`` mirroring the HTTP status. Optional keys are omitted when unset
so an envelope only ever carries its own shape.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class FieldErrorItem(BaseModel):
    """A single field-level error."""

    field: str
    message: str
    location: str = "body"
    type: Optional[str] = None
    code: Optional[str] = None
    suggestion: Optional[str] = None


class SuccessEnvelope(BaseModel):
    """Envelope returned by every successful operation."""

    success: bool = True
    code: int
    message: str
    data: Any = None
    count: Optional[int] = None
    total: Optional[int] = None


class ErrorEnvelope(BaseModel):
    """Envelope returned for every failure.

    Diagnostic keys (stack, type, path, method and rate-limit counters)
    are only ever present in development.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = False
    code: int
    message: str
    errors: Optional[list[FieldErrorItem]] = None
    metadata: Optional[dict[str, Any]] = None
    stack: Optional[str] = None
    type: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None


def dump_envelope(envelope: BaseModel) -> dict[str, Any]:
    """Serialize an envelope to JSON-ready data, keeping only the keys that were set."""
    return envelope.model_dump(mode="json", exclude_unset=True)


def success_body(
    code: int,
    message: str,
    data: Any,
    count: Optional[int] = None,
    total: Optional[int] = None,
) -> dict[str, Any]:
    """Build a success envelope body."""
    fields: dict[str, Any] = {"success": True, "code": code, "message": message, "data": data}
    if count is not None:
        fields["count"] = count
    if total is not None:
        fields["total"] = total
    return dump_envelope(SuccessEnvelope(**fields))


def error_body(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate and serialize an error envelope body."""
    return dump_envelope(ErrorEnvelope(**fields))

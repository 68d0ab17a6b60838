"""
Request validation failure.

Raised by the request validator when a payload does not satisfy its
schema. Carries pydantic-style details grouped by location, the status
code the client should receive and optional client-facing metadata.
"""

from typing import Any, Mapping, Optional, Sequence

HTTP_422 = 422


class RequestValidationFailure(Exception):
    """A request payload failed validation.

    Args:
        details: Error dicts with ``loc`` (location first), ``msg``,
            ``type``, ``code`` and ``suggestion`` keys.
        status_code: HTTP status to answer with.
        metadata: Hints for the client, such as ``suggestedFix``.
    """

    def __init__(
        self,
        details: Sequence[dict[str, Any]],
        status_code: int = HTTP_422,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._details = [dict(detail) for detail in details]
        self.status_code = status_code
        self.metadata = dict(metadata or {})
        super().__init__(f"{len(self._details)} validation error(s)")

    def errors(self) -> list[dict[str, Any]]:
        return [dict(detail) for detail in self._details]

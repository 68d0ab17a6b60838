"""
Data Transfer Objects for the records application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class OperationResult:
    """Output DTO of one controller operation.

    Attributes:
        status: HTTP status code the interface layer must answer with.
        message: Fixed success (or empty-listing) message.
        data: One public record, a page of records, or None.
        count: Length of the returned page (list only).
        total: Unconditional match count (list only).
    """

    status: int
    message: str
    data: Any = None
    count: Optional[int] = None
    total: Optional[int] = None

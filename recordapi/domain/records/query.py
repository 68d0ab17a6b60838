"""
Query plan value types.

A ``QueryPlan`` is built once per list request and handed to a storage
adapter, which interprets the predicate tree in its own terms. Every type
here is immutable.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class MatchAll:
    """Predicate satisfied by every record."""


@dataclass(frozen=True)
class FieldEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class FieldIn:
    """Field equals any of several values (a repeated query key)."""

    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class FieldContains:
    """Case-insensitive partial match. ``text`` is literal, never a pattern."""

    field: str
    text: str


@dataclass(frozen=True)
class TextSearch:
    """Full-text search over the fields of a text index."""

    text: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple["Predicate", ...]


@dataclass(frozen=True)
class AllOf:
    conditions: tuple["Predicate", ...]


Predicate = Union[MatchAll, FieldEquals, FieldIn, FieldContains, TextSearch, AnyOf, AllOf]


class SortDirection(int, Enum):
    ASCENDING = 1
    DESCENDING = -1


class ProjectionMode(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class Projection:
    """Either "include only these fields" or "exclude these fields".

    An include projection with no fields selects nothing beyond the
    identifier.
    """

    mode: ProjectionMode
    fields: tuple[str, ...] = ()

    def apply(self, record: Mapping[str, Any], id_field: str = "id") -> dict[str, Any]:
        if self.mode is ProjectionMode.EXCLUDE:
            return {k: v for k, v in record.items() if k not in self.fields}
        selected = {id_field: record[id_field]} if id_field in record else {}
        for name in self.fields:
            if name in record:
                selected[name] = record[name]
        return selected


@dataclass(frozen=True)
class Pagination:
    page: int
    per_page: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


@dataclass(frozen=True)
class QueryPlan:
    """Everything a store needs to answer one list request.

    Attributes:
        filter: Predicate tree selecting matching records.
        sort: Ordered (field, direction) pairs. Empty means store order.
        projection: Field selection applied to each result.
        pagination: Skip/limit bounds, or None to return every match.
        populate: Reference fields to expand, or None.
    """

    filter: Predicate = field(default_factory=MatchAll)
    sort: tuple[tuple[str, SortDirection], ...] = ()
    projection: Projection = field(
        default_factory=lambda: Projection(ProjectionMode.EXCLUDE)
    )
    pagination: Optional[Pagination] = None
    populate: Optional[tuple[str, ...]] = None

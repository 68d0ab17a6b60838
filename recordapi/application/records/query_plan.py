"""
Query plan construction from raw request parameters.

Turns a query string (plus optional body directives) and a record type
descriptor into a ``QueryPlan``. The builder never raises: malformed
directives degrade to their defaults so listing endpoints always answer.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from recordapi.domain.records.entities import RecordTypeDescriptor
from recordapi.domain.records.query import (
    AllOf,
    AnyOf,
    FieldContains,
    FieldEquals,
    FieldIn,
    MatchAll,
    Pagination,
    Predicate,
    Projection,
    ProjectionMode,
    QueryPlan,
    SortDirection,
    TextSearch,
)
from recordapi.shared.constants import (
    CONTROL_QUERY_PARAMS,
    DEFAULT_PAGE,
    OPERATOR_PREFIX,
)

logger = logging.getLogger(__name__)

ParamValue = Union[str, Sequence[str]]


def split_fields(value: Optional[ParamValue]) -> Optional[list[str]]:
    """Convert a comma-separated value into a list of trimmed names.

    Returns None when the value is absent or blank. A repeated parameter
    (a sequence of strings) is joined before splitting.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = ",".join(str(v) for v in value)
    if not value.strip():
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def strip_reserved(
    params: Mapping[str, ParamValue], reserved: Iterable[str]
) -> dict[str, ParamValue]:
    """Drop reserved keys and every operator-prefixed key."""
    reserved = set(reserved)
    return {
        key: value
        for key, value in params.items()
        if key not in reserved and not key.startswith(OPERATOR_PREFIX)
    }


def _last(value: Optional[ParamValue]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value[-1] if value else None


def _positive_int(value: Optional[ParamValue]) -> Optional[int]:
    raw = _last(value)
    if raw is None:
        return None
    try:
        number = int(str(raw).strip())
    except ValueError:
        return None
    return number if number > 0 else None


class QueryPlanBuilder:
    """Builds query plans for list requests.

    Args:
        reserved_params: Caller-declared keys that never become filter
            conditions, on top of the control parameters.
    """

    def __init__(self, reserved_params: Iterable[str] = ()) -> None:
        self._reserved = frozenset(CONTROL_QUERY_PARAMS) | frozenset(reserved_params)

    @property
    def reserved(self) -> frozenset[str]:
        return self._reserved

    def build(
        self,
        params: Mapping[str, ParamValue],
        descriptor: RecordTypeDescriptor,
        body: Optional[Mapping[str, Any]] = None,
    ) -> QueryPlan:
        """Build the plan for one list request.

        Args:
            params: Raw query parameters; repeated keys as sequences.
            descriptor: Metadata of the collection being queried.
            body: Optional body directives (``populateMap``).

        Returns:
            The query plan.
        """
        plan = QueryPlan(
            filter=self.build_filter(params, descriptor),
            sort=self.build_sort(params),
            projection=self.build_projection(params, descriptor),
            pagination=self.build_pagination(params),
            populate=self.build_populate(body),
        )
        logger.debug("Built query plan for %s: %s", descriptor.name, plan)
        return plan

    def build_sort(
        self, params: Mapping[str, ParamValue]
    ) -> tuple[tuple[str, SortDirection], ...]:
        """Map ``asc``/``dsc`` field lists to sort directions.

        Ascending is applied first and descending second over the same
        mapping, so a field named in both lists sorts descending.
        """
        order: dict[str, SortDirection] = {}
        for name in split_fields(params.get("asc")) or []:
            order[name] = SortDirection.ASCENDING
        for name in split_fields(params.get("dsc")) or []:
            order[name] = SortDirection.DESCENDING
        return tuple(order.items())

    def build_projection(
        self, params: Mapping[str, ParamValue], descriptor: RecordTypeDescriptor
    ) -> Projection:
        """Select requested fields, never including protected ones."""
        requested = split_fields(params.get("fields"))
        if requested is None:
            return Projection(
                ProjectionMode.EXCLUDE, tuple(sorted(descriptor.protected_fields))
            )
        return Projection(ProjectionMode.INCLUDE, tuple(descriptor.unprotected(requested)))

    def build_pagination(self, params: Mapping[str, ParamValue]) -> Optional[Pagination]:
        """Return skip/limit bounds only when ``perPage`` was supplied."""
        per_page = _positive_int(params.get("perPage"))
        if per_page is None:
            return None
        page = _positive_int(params.get("page")) or DEFAULT_PAGE
        return Pagination(page=page, per_page=per_page)

    def build_filter(
        self, params: Mapping[str, ParamValue], descriptor: RecordTypeDescriptor
    ) -> Predicate:
        """Combine the search condition with literal field filters."""
        conditions: list[Predicate] = []

        search = _last(params.get("query"))
        if search:
            if descriptor.text_search:
                conditions.append(TextSearch(search, descriptor.searchable_fields))
            elif descriptor.searchable_fields:
                conditions.append(
                    AnyOf(
                        tuple(
                            FieldContains(name, search)
                            for name in descriptor.searchable_fields
                        )
                    )
                )

        for key, value in strip_reserved(params, self._reserved).items():
            if isinstance(value, str):
                conditions.append(FieldEquals(key, value))
            elif len(value) == 1:
                conditions.append(FieldEquals(key, value[0]))
            elif value:
                conditions.append(FieldIn(key, tuple(value)))

        if not conditions:
            return MatchAll()
        if len(conditions) == 1:
            return conditions[0]
        return AllOf(tuple(conditions))

    def build_populate(self, body: Optional[Mapping[str, Any]]) -> Optional[tuple[str, ...]]:
        """Read the ``populateMap`` body directive; query strings never populate."""
        if not isinstance(body, Mapping):
            return None
        directive = body.get("populateMap")
        if isinstance(directive, str):
            fields = split_fields(directive)
        elif isinstance(directive, (list, tuple)):
            fields = split_fields([item for item in directive if isinstance(item, str)])
        else:
            return None
        return tuple(fields) if fields else None

"""
Adapter: SQL document collection.

Implements the RecordCollection port over one SQLAlchemy table through an
async engine. The predicate tree is compiled to SQL; Postgres full-text
search backs ``TextSearch``. Unique-index violations reported by the
driver are translated into ``UniqueConstraintViolation``.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

from sqlalchemy import Column, ColumnElement, String, Table, and_, cast, false, func, or_, select, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from recordapi.domain.records.entities import Record, RecordTypeDescriptor
from recordapi.domain.records.errors import UniqueConstraintViolation
from recordapi.domain.records.query import (
    AllOf,
    AnyOf,
    FieldContains,
    FieldEquals,
    FieldIn,
    MatchAll,
    Predicate,
    ProjectionMode,
    QueryPlan,
    SortDirection,
    TextSearch,
)
from recordapi.infrastructure.records.base import BaseCollection, CollectionRegistry

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"
TEXT_SEARCH_CONFIG = "simple"
_WORD = re.compile(r"\w+")
_DETAIL_KEY = re.compile(r"Key \(([^)]+)\)=")
_CONSTRAINT = re.compile(r'constraint "([^"]+)"')
_TRUE_STRINGS = {"true", "1", "yes"}


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def coerce(column: Column, raw: Any) -> Any:
    """Convert a query-string value to the column's Python type.

    Returns None when the value cannot be represented in that type.
    """
    if not isinstance(raw, str):
        return raw
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw
    if python_type is str:
        return raw
    if python_type is bool:
        return raw.strip().lower() in _TRUE_STRINGS
    if python_type is datetime:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    try:
        return python_type(raw.strip())
    except (TypeError, ValueError, ArithmeticError):
        return None


class SqlAlchemyCollection(BaseCollection):
    """Document collection persisted in one SQL table.

    Args:
        engine: Async SQLAlchemy engine.
        table: Table holding the collection; its primary key is the
            descriptor's identifier column.
        descriptor: Metadata of the collection.
        registry: Sibling collections used to populate references.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        table: Table,
        descriptor: RecordTypeDescriptor,
        registry: Optional[CollectionRegistry] = None,
    ) -> None:
        super().__init__(descriptor, registry)
        self._engine = engine
        self._table = table

    @property
    def table(self) -> Table:
        return self._table

    @property
    def _id_column(self) -> Column:
        return self._table.c[self.descriptor.id_field]

    def compile(self, predicate: Predicate) -> ColumnElement[bool]:
        """Translate a predicate tree into a SQL boolean expression.

        Conditions on unknown columns never match.
        """
        if isinstance(predicate, MatchAll):
            return true()
        if isinstance(predicate, (FieldEquals, FieldIn)):
            column = self._table.c.get(predicate.field)
            if column is None:
                return false()
            raw_values = (
                (predicate.value,) if isinstance(predicate, FieldEquals) else predicate.values
            )
            values = [v for v in (coerce(column, raw) for raw in raw_values) if v is not None]
            if not values:
                return false()
            return column == values[0] if len(values) == 1 else column.in_(values)
        if isinstance(predicate, FieldContains):
            column = self._table.c.get(predicate.field)
            if column is None:
                return false()
            pattern = f"%{escape_like(predicate.text)}%"
            return cast(column, String).ilike(pattern, escape="\\")
        if isinstance(predicate, TextSearch):
            return self._text_search(predicate)
        if isinstance(predicate, AnyOf):
            return or_(false(), *(self.compile(c) for c in predicate.conditions))
        if isinstance(predicate, AllOf):
            return and_(true(), *(self.compile(c) for c in predicate.conditions))
        raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")

    def _text_search(self, predicate: TextSearch) -> ColumnElement[bool]:
        # Any term may match, like a document-store text index
        terms = _WORD.findall(predicate.text.lower())
        columns = [self._table.c[name] for name in predicate.fields if name in self._table.c]
        if not terms or not columns:
            return false()
        document = func.to_tsvector(
            TEXT_SEARCH_CONFIG,
            func.concat_ws(" ", *(cast(c, String) for c in columns)),
        )
        query = func.to_tsquery(TEXT_SEARCH_CONFIG, " | ".join(terms))
        return document.op("@@")(query)

    async def count(self, predicate: Predicate) -> int:
        statement = select(func.count()).select_from(self._table).where(self.compile(predicate))
        async with self._engine.connect() as conn:
            return (await conn.execute(statement)).scalar_one()

    async def find(self, plan: QueryPlan) -> list[Record]:
        """Return filtered, sorted, projected and paginated rows."""
        statement = select(*self._projected_columns(plan)).where(self.compile(plan.filter))

        for name, direction in plan.sort:
            column = self._table.c.get(name)
            if column is None:
                continue
            if direction is SortDirection.DESCENDING:
                statement = statement.order_by(column.desc().nulls_last())
            else:
                statement = statement.order_by(column.asc().nulls_first())

        if plan.pagination is not None:
            statement = statement.offset(plan.pagination.skip).limit(plan.pagination.limit)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(statement)).mappings().all()
        return [await self.populate(dict(row), plan.populate) for row in rows]

    def _projected_columns(self, plan: QueryPlan) -> list[Column]:
        projection = plan.projection
        if projection.mode is ProjectionMode.EXCLUDE:
            return [c for c in self._table.c if c.name not in projection.fields]
        names = [self.descriptor.id_field, *projection.fields]
        return [self._table.c[name] for name in dict.fromkeys(names) if name in self._table.c]

    async def insert(self, payload: Mapping[str, Any]) -> Record:
        document = self.prepare(payload)
        now = datetime.now(timezone.utc)
        values = {
            **self._known(document),
            self.descriptor.id_field: uuid4().hex,
            self.descriptor.created_field: now,
            self.descriptor.updated_field: now,
        }
        statement = self._table.insert().values(**values).returning(*self._table.c)
        async with self._engine.begin() as conn:
            try:
                row = (await conn.execute(statement)).mappings().one()
            except IntegrityError as exc:
                violation = self._unique_violation(exc)
                if violation is None:
                    raise
                raise violation from exc
        return dict(row)

    async def find_by_id(
        self, record_id: str, populate: Optional[Sequence[str]] = None
    ) -> Optional[Record]:
        statement = select(self._table).where(self._id_column == record_id)
        async with self._engine.connect() as conn:
            row = (await conn.execute(statement)).mappings().one_or_none()
        if row is None:
            return None
        return await self.populate(dict(row), populate)

    async def find_by_id_and_update(
        self,
        record_id: str,
        changes: Mapping[str, Any],
        populate: Optional[Sequence[str]] = None,
    ) -> Optional[Record]:
        async with self._engine.begin() as conn:
            current = (
                await conn.execute(
                    select(self._table).where(self._id_column == record_id).with_for_update()
                )
            ).mappings().one_or_none()
            if current is None:
                return None

            document = self.prepare({**current, **changes})
            statement = (
                self._table.update()
                .where(self._id_column == record_id)
                .values(
                    **self._known(document),
                    **{self.descriptor.updated_field: datetime.now(timezone.utc)},
                )
                .returning(*self._table.c)
            )
            try:
                row = (await conn.execute(statement)).mappings().one()
            except IntegrityError as exc:
                violation = self._unique_violation(exc)
                if violation is None:
                    raise
                raise violation from exc
        return await self.populate(dict(row), populate)

    async def find_by_id_and_delete(self, record_id: str) -> Optional[Record]:
        statement = (
            self._table.delete().where(self._id_column == record_id).returning(*self._table.c)
        )
        async with self._engine.begin() as conn:
            row = (await conn.execute(statement)).mappings().one_or_none()
        return dict(row) if row is not None else None

    def _known(self, document: Mapping[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in document.items() if k in self._table.c}

    def _unique_violation(self, exc: IntegrityError) -> Optional[UniqueConstraintViolation]:
        """Map a driver integrity error to a uniqueness signal, if it is one."""
        original = exc.orig
        message = str(original)
        sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
        if sqlstate != UNIQUE_VIOLATION_SQLSTATE and "unique" not in message.lower():
            return None

        fields = self._conflicting_fields(original, message)
        logger.info("Unique violation on %s: %s", self.descriptor.name, fields or "unknown")
        return UniqueConstraintViolation(fields)

    def _conflicting_fields(self, original: Any, message: str) -> list[str]:
        """Unique fields named by the violation's key columns or constraint.

        The driver message also echoes the conflicting value, so only the
        ``Key (<cols>)=`` group and the constraint name are inspected.
        """
        diag = getattr(original, "diag", None)
        detail = getattr(diag, "message_detail", None) or message
        match = _DETAIL_KEY.search(detail)
        if match:
            columns = {column.strip() for column in match.group(1).split(",")}
            return [name for name in self.descriptor.unique_fields if name in columns]

        constraint = getattr(diag, "constraint_name", None)
        if constraint is None:
            named = _CONSTRAINT.search(message)
            constraint = named.group(1) if named else ""
        prefix = f"{self._table.name}_"
        return [
            name
            for name in self.descriptor.unique_fields
            if constraint in (f"{prefix}{name}_key", f"ix_{prefix}{name}", f"uq_{prefix}{name}")
        ]

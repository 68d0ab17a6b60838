"""
Adapter: In-memory document collection.

Implements the RecordCollection port over a dict held in process memory.
Used by the ``memory`` storage backend and by the test-suite. Each method
completes without suspending, so a uniqueness check and the write that
follows it cannot interleave with another request.
"""

import copy
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import uuid4

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
    QueryPlan,
    SortDirection,
    TextSearch,
)
from recordapi.infrastructure.records.base import BaseCollection, CollectionRegistry

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+")
_TRUE_STRINGS = {"true", "1", "yes"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _equals(stored: Any, raw: Any) -> bool:
    """Compare a stored value with a (usually string) query value."""
    if isinstance(raw, str) and not isinstance(stored, str):
        if stored is None:
            return False
        if isinstance(stored, bool):
            return stored == (raw.strip().lower() in _TRUE_STRINGS)
        if isinstance(stored, (int, float, Decimal)):
            try:
                return Decimal(str(stored)) == Decimal(raw.strip())
            except ArithmeticError:
                return False
        if isinstance(stored, datetime):
            return stored.isoformat() == raw
        if isinstance(stored, (list, tuple)):
            return any(_equals(item, raw) for item in stored)
        return str(stored) == raw
    return stored == raw


def matches(predicate: Predicate, record: Mapping[str, Any]) -> bool:
    """Evaluate a predicate tree against one record."""
    if isinstance(predicate, MatchAll):
        return True
    if isinstance(predicate, FieldEquals):
        return _equals(record.get(predicate.field), predicate.value)
    if isinstance(predicate, FieldIn):
        stored = record.get(predicate.field)
        return any(_equals(stored, value) for value in predicate.values)
    if isinstance(predicate, FieldContains):
        stored = record.get(predicate.field)
        return stored is not None and predicate.text.lower() in str(stored).lower()
    if isinstance(predicate, TextSearch):
        terms = set(_WORD.findall(predicate.text.lower()))
        words: set[str] = set()
        for name in predicate.fields:
            words.update(_WORD.findall(str(record.get(name) or "").lower()))
        return bool(terms & words)
    if isinstance(predicate, AnyOf):
        return any(matches(c, record) for c in predicate.conditions)
    if isinstance(predicate, AllOf):
        return all(matches(c, record) for c in predicate.conditions)
    raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort first on ascending order
    if value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float, Decimal)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.isoformat())
    return (4, str(value))


class InMemoryCollection(BaseCollection):
    """Document collection stored in a dict keyed by identifier.

    Args:
        descriptor: Metadata of the collection.
        registry: Sibling collections used to populate references.
        clock: Timestamp source, injectable for tests.
    """

    def __init__(
        self,
        descriptor: RecordTypeDescriptor,
        registry: Optional[CollectionRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(descriptor, registry)
        self._documents: dict[str, Record] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._documents)

    async def count(self, predicate: Predicate) -> int:
        return sum(1 for doc in self._documents.values() if matches(predicate, doc))

    async def find(self, plan: QueryPlan) -> list[Record]:
        """Return filtered, sorted, projected and paginated records.

        Args:
            plan: The query plan for this request.

        Returns:
            Deep copies of the selected records.
        """
        selected = [doc for doc in self._documents.values() if matches(plan.filter, doc)]

        # Stable sorts applied from the least to the most significant key
        for name, direction in reversed(plan.sort):
            selected.sort(
                key=lambda doc: _sort_key(doc.get(name)),
                reverse=direction is SortDirection.DESCENDING,
            )

        if plan.pagination is not None:
            start = plan.pagination.skip
            selected = selected[start:start + plan.pagination.limit]

        results = []
        for doc in selected:
            record = plan.projection.apply(copy.deepcopy(doc), self.descriptor.id_field)
            results.append(await self.populate(record, plan.populate))
        return results

    async def insert(self, payload: Mapping[str, Any]) -> Record:
        document = self.prepare(payload)
        self._check_unique(document)

        now = self._clock()
        record_id = uuid4().hex
        document = {
            self.descriptor.id_field: record_id,
            **document,
            self.descriptor.created_field: now,
            self.descriptor.updated_field: now,
        }
        self._documents[record_id] = document
        logger.debug("Inserted %s/%s", self.descriptor.name, record_id)
        return copy.deepcopy(document)

    async def find_by_id(
        self, record_id: str, populate: Optional[Sequence[str]] = None
    ) -> Optional[Record]:
        document = self._documents.get(record_id)
        if document is None:
            return None
        return await self.populate(copy.deepcopy(document), populate)

    async def find_by_id_and_update(
        self,
        record_id: str,
        changes: Mapping[str, Any],
        populate: Optional[Sequence[str]] = None,
    ) -> Optional[Record]:
        existing = self._documents.get(record_id)
        if existing is None:
            return None

        document = self.prepare({**existing, **changes})
        self._check_unique(document, exclude_id=record_id)

        updated = {
            self.descriptor.id_field: record_id,
            **document,
            self.descriptor.created_field: existing.get(self.descriptor.created_field),
            self.descriptor.updated_field: self._clock(),
        }
        self._documents[record_id] = updated
        return await self.populate(copy.deepcopy(updated), populate)

    async def find_by_id_and_delete(self, record_id: str) -> Optional[Record]:
        document = self._documents.pop(record_id, None)
        if document is None:
            return None
        logger.debug("Deleted %s/%s", self.descriptor.name, record_id)
        return document

    def _check_unique(self, document: Mapping[str, Any], exclude_id: Optional[str] = None) -> None:
        conflicts = []
        for name in self.descriptor.unique_fields:
            value = document.get(name)
            if value is None:
                continue
            for other_id, other in self._documents.items():
                if other_id != exclude_id and other.get(name) == value:
                    conflicts.append(name)
                    break
        if conflicts:
            raise UniqueConstraintViolation(conflicts)

"""
Port interfaces (ABCs) for the records bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from recordapi.domain.records.entities import Record, RecordTypeDescriptor
from recordapi.domain.records.query import Predicate, QueryPlan


class RecordCollection(ABC):
    """Port for one document collection.

    Every method is a single round trip to the store. Writes that collide
    with a unique field raise ``UniqueConstraintViolation``; documents that
    fail schema validation raise ``SchemaValidationError``.
    """

    descriptor: RecordTypeDescriptor

    @abstractmethod
    async def count(self, predicate: Predicate) -> int:
        """Return the number of records matching the predicate."""
        raise NotImplementedError

    @abstractmethod
    async def find(self, plan: QueryPlan) -> list[Record]:
        """Return filtered, sorted, projected and paginated records."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, payload: Mapping[str, Any]) -> Record:
        """Validate and persist a new record, returning it in full."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(
        self, record_id: str, populate: Optional[Sequence[str]] = None
    ) -> Optional[Record]:
        """Return a record by identifier, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id_and_update(
        self,
        record_id: str,
        changes: Mapping[str, Any],
        populate: Optional[Sequence[str]] = None,
    ) -> Optional[Record]:
        """Apply field changes with full validation; return the new state or None."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id_and_delete(self, record_id: str) -> Optional[Record]:
        """Remove a record and return it, or None if not found."""
        raise NotImplementedError

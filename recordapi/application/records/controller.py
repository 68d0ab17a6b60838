"""
Generic CRUD controller.

Executes create/list/get/update/delete against any ``RecordCollection``
and shapes the result. Failures are never formatted here: they are raised
as ``ApiError`` (or left as storage signals) for the centralized error
handlers. The only local recovery is the conversion of storage-level
uniqueness conflicts into field-scoped duplicate errors.
"""

import logging
from typing import Any, Awaitable, Mapping, Optional

from recordapi.application.records.dtos import OperationResult
from recordapi.application.records.query_plan import (
    ParamValue,
    QueryPlanBuilder,
    split_fields,
)
from recordapi.domain.records.entities import Record
from recordapi.domain.records.errors import (
    DuplicateKeyError,
    NotFoundError,
    UniqueConstraintViolation,
    ValidationError,
)
from recordapi.domain.records.ports import RecordCollection
from recordapi.shared.constants import ErrorMessage, SuccessMessage

logger = logging.getLogger(__name__)

POPULATE_DIRECTIVE = "populateMap"


def check_duplication(exc: Exception) -> Exception:
    """Convert a uniqueness conflict into a DuplicateKeyError.

    Any other failure, or a conflict that names no field, is returned
    unchanged so the caller can re-raise it.
    """
    if not isinstance(exc, UniqueConstraintViolation) or not exc.fields:
        return exc
    logger.info("Duplicate key on fields: %s", ", ".join(exc.fields))
    return DuplicateKeyError.for_fields(exc.fields)


class RecordController:
    """Generic controller over one collection.

    Args:
        collection: Store adapter for the collection; its descriptor
            supplies searchable and protected fields.
        builder: Query plan builder. Defaults to one with no extra
            reserved parameters.
    """

    def __init__(
        self,
        collection: RecordCollection,
        builder: Optional[QueryPlanBuilder] = None,
    ) -> None:
        self._collection = collection
        self._descriptor = collection.descriptor
        self._builder = builder or QueryPlanBuilder()

    @property
    def descriptor(self):
        return self._descriptor

    async def create(self, payload: Mapping[str, Any]) -> OperationResult:
        """Persist a new record and return its public transform (201)."""
        record = await self._write(self._collection.insert(dict(payload)))

        logger.info("Created %s record %s", self._descriptor.name, self._record_id(record))
        return OperationResult(
            status=201,
            message=SuccessMessage.CREATED.value,
            data=self._descriptor.public(record),
        )

    async def list(
        self,
        params: Mapping[str, ParamValue],
        body: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        """Return one page of matching records plus the total match count.

        The total is counted before the page is fetched, in a separate
        round trip; a concurrent write in between can make the two
        disagree.
        """
        plan = self._builder.build(params, self._descriptor, body)
        total = await self._collection.count(plan.filter)
        records = await self._collection.find(plan)

        message = SuccessMessage.RETRIEVED if records else ErrorMessage.NOT_FOUND
        return OperationResult(
            status=200,
            message=message.value,
            data=records,
            count=len(records),
            total=total,
        )

    async def get(
        self,
        record_id: str,
        populate: Optional[ParamValue] = None,
    ) -> OperationResult:
        """Fetch one record by identifier, optionally expanding references."""
        record = await self._collection.find_by_id(record_id, split_fields(populate))
        if record is None:
            raise self._not_found(record_id)

        return OperationResult(
            status=200,
            message=SuccessMessage.RETRIEVED.value,
            data=self._descriptor.public(record),
        )

    async def update(self, record_id: str, payload: Mapping[str, Any]) -> OperationResult:
        """Apply field changes with full validation and return the new state."""
        populate = self._builder.build_populate(payload)
        changes = {k: v for k, v in payload.items() if k != POPULATE_DIRECTIVE}
        if not changes:
            raise ValidationError(ErrorMessage.MISSING_FIELDS.value)

        record = await self._write(
            self._collection.find_by_id_and_update(record_id, changes, populate)
        )
        if record is None:
            raise self._not_found(record_id)

        logger.info("Updated %s record %s", self._descriptor.name, record_id)
        return OperationResult(
            status=200,
            message=SuccessMessage.UPDATED.value,
            data=self._descriptor.public(record),
        )

    async def delete(self, record_id: str) -> OperationResult:
        """Remove a record and return its public transform."""
        record = await self._collection.find_by_id_and_delete(record_id)
        if record is None:
            raise self._not_found(record_id)

        logger.info("Deleted %s record %s", self._descriptor.name, record_id)
        return OperationResult(
            status=200,
            message=SuccessMessage.DELETED.value,
            data=self._descriptor.public(record),
        )

    async def _write(self, operation: Awaitable[Optional[Record]]) -> Optional[Record]:
        try:
            return await operation
        except UniqueConstraintViolation as exc:
            converted = check_duplication(exc)
            if converted is exc:
                raise
            raise converted from exc

    def _not_found(self, record_id: str) -> NotFoundError:
        logger.info("No %s record with id %s", self._descriptor.name, record_id)
        return NotFoundError()

    def _record_id(self, record: Record) -> Any:
        return record.get(self._descriptor.id_field)

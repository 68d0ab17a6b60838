"""
Shared behaviour of every storage adapter.

Covers what the store does on top of raw reads and writes: running the
normalization hook and full schema validation before a write, and
expanding reference fields through a registry of sibling collections.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from recordapi.domain.records.entities import Record, RecordTypeDescriptor
from recordapi.domain.records.errors import SchemaValidationError
from recordapi.domain.records.ports import RecordCollection

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


class CollectionRegistry:
    """Name to collection lookup used when populating references."""

    def __init__(self) -> None:
        self._collections: dict[str, RecordCollection] = {}

    def register(self, collection: RecordCollection) -> RecordCollection:
        self._collections[collection.descriptor.name] = collection
        return collection

    def get(self, name: str) -> Optional[RecordCollection]:
        return self._collections.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._collections

    def names(self) -> list[str]:
        return sorted(self._collections)


def schema_errors(exc: PydanticValidationError) -> SchemaValidationError:
    """Translate a model validation failure into a field -> reason mapping.

    Only the first problem reported for each top-level field is kept.
    """
    reasons: dict[str, str] = {}
    kinds: dict[str, str] = {}
    for error in exc.errors():
        location = error.get("loc") or ("unknown",)
        name = str(location[0])
        if name in reasons:
            continue
        message = error.get("msg", "")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        reasons[name] = message
        kinds[name] = error.get("type", "")
    return SchemaValidationError(reasons, kinds)


class BaseCollection(RecordCollection):
    """Common base for collection adapters.

    Args:
        descriptor: Metadata of the collection.
        registry: Sibling collections used to populate references.
    """

    def __init__(
        self,
        descriptor: RecordTypeDescriptor,
        registry: Optional[CollectionRegistry] = None,
    ) -> None:
        self.descriptor = descriptor
        self._registry = registry

    @property
    def system_fields(self) -> tuple[str, str, str]:
        d = self.descriptor
        return (d.id_field, d.created_field, d.updated_field)

    def prepare(self, document: Mapping[str, Any]) -> Record:
        """Normalize and validate a document before it is written.

        System fields (identifier and timestamps) are never taken from
        the caller.

        Raises:
            SchemaValidationError: If the descriptor's schema rejects it.
        """
        data = {k: v for k, v in document.items() if k not in self.system_fields}
        if self.descriptor.normalize is not None:
            data = self.descriptor.normalize(data)

        schema = self.descriptor.schema
        if schema is None:
            return data
        try:
            model: BaseModel = schema.model_validate(data)
        except PydanticValidationError as exc:
            raise schema_errors(exc) from exc
        return model.model_dump()

    async def populate(
        self, record: Record, fields: Optional[Sequence[str]]
    ) -> Record:
        """Replace reference values with the public form of the referenced records.

        Fields without a declared reference, or whose collection is not
        registered, are left untouched. Dangling references become None.
        """
        if not fields or self._registry is None:
            return record

        for name in fields:
            target_name = self.descriptor.references.get(name)
            target = self._registry.get(target_name) if target_name else None
            if target is None or name not in record:
                logger.debug("Skipping population of %s.%s", self.descriptor.name, name)
                continue

            value = record[name]
            if isinstance(value, (list, tuple)):
                record[name] = [await self._expand(target, item) for item in value]
            elif value is not None:
                record[name] = await self._expand(target, value)
        return record

    @staticmethod
    async def _expand(target: RecordCollection, value: Any) -> Optional[Record]:
        referenced = await target.find_by_id(str(value))
        return target.descriptor.public(referenced) if referenced is not None else None

"""
Domain entities for the records bounded context.

A record is an opaque document owned by the storage layer; the core only
ever sees it as a plain mapping for the lifetime of one request. The
descriptor is the static metadata that makes one generic controller
serve any collection.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

Record = dict[str, Any]


@dataclass(frozen=True)
class RecordTypeDescriptor:
    """Static, per-collection metadata shared by every request.

    Attributes:
        name: Collection name, also used as the population registry key.
        searchable_fields: Fields matched by the free-text ``query`` parameter.
        protected_fields: Fields never projected by default and never
            returned in a public transform.
        unique_fields: Fields the store keeps unique, in declaration order.
        text_search: True when the store maintains a full-text index over
            the searchable fields.
        schema: Optional model class used for full field validation on
            insert and update.
        normalize: Optional hook applied to a document before it is
            validated and persisted.
        references: Field name to referenced collection name, for population.
        id_field: Name of the identifier field.
        created_field: Name of the creation timestamp field.
        updated_field: Name of the update timestamp field.
    """

    name: str
    searchable_fields: tuple[str, ...] = ()
    protected_fields: frozenset[str] = frozenset()
    unique_fields: tuple[str, ...] = ()
    text_search: bool = False
    schema: Optional[type] = None
    normalize: Optional[Callable[[Record], Record]] = None
    references: Mapping[str, str] = field(default_factory=dict)
    id_field: str = "id"
    created_field: str = "created_at"
    updated_field: str = "updated_at"

    def __post_init__(self) -> None:
        object.__setattr__(self, "searchable_fields", tuple(self.searchable_fields))
        object.__setattr__(self, "protected_fields", frozenset(self.protected_fields))
        object.__setattr__(self, "unique_fields", tuple(self.unique_fields))
        object.__setattr__(self, "references", MappingProxyType(dict(self.references)))

    def public(self, record: Mapping[str, Any]) -> Record:
        """Return the record without its protected fields.

        Computed fresh on every call; the input is never modified.
        """
        return {k: v for k, v in record.items() if k not in self.protected_fields}

    def unprotected(self, fields: Iterable[str]) -> list[str]:
        """Return ``fields`` with every protected field removed, order kept."""
        return [f for f in fields if f not in self.protected_fields]

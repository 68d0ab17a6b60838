"""
Storage definition of the companies collection.

Holds the stored-document schema (full field validation on every
write), the SQL table for the ``sql`` backend and the collection
descriptor shared by every request.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Column, DateTime, MetaData, String, Table

from recordapi.domain.companies.entities import (
    NAME_MAX_LENGTH,
    SLUG_PATTERN,
    CompanyStatus,
    normalize_company,
)
from recordapi.domain.records.entities import RecordTypeDescriptor

metadata = MetaData()

companies_table = Table(
    "companies",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(NAME_MAX_LENGTH), nullable=False, unique=True, index=True),
    Column("slug", String(NAME_MAX_LENGTH), nullable=False, unique=True, index=True),
    Column("status", String(16), nullable=False, default=CompanyStatus.ACTIVE.value, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class CompanyDocument(BaseModel):
    """Stored shape of a company."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    status: CompanyStatus = CompanyStatus.ACTIVE

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Company name cannot be empty")
        return value.strip()


COMPANY_DESCRIPTOR = RecordTypeDescriptor(
    name="companies",
    searchable_fields=("name", "slug"),
    protected_fields=frozenset({"created_at", "updated_at"}),
    unique_fields=("name", "slug"),
    schema=CompanyDocument,
    normalize=normalize_company,
)

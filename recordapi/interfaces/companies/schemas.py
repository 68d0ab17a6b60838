"""
Pydantic schemas for company API request validation.

These schemas enforce input validation and define the API contract.
No business logic belongs here.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from recordapi.domain.companies.entities import NAME_MAX_LENGTH, CompanyStatus

NAME_DESCRIPTION = "Unique company name"


class CompanyCreate(BaseModel):
    """Request schema for creating a company.

    Attributes:
        name: Company name (1-250 chars), unique.
        status: Operational status. Defaults to active.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=NAME_MAX_LENGTH,
        description=NAME_DESCRIPTION,
        examples=["ACME Corp"],
    )
    status: CompanyStatus = Field(
        default=CompanyStatus.ACTIVE, description="Company operational status"
    )


class CompanyUpdate(BaseModel):
    """Request schema for updating a company. At least one field is required."""

    name: Optional[str] = Field(
        default=None, min_length=1, max_length=NAME_MAX_LENGTH, description="Updated company name"
    )
    status: Optional[CompanyStatus] = Field(default=None, description="Updated company status")

    @model_validator(mode="after")
    def at_least_one_field(self) -> "CompanyUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

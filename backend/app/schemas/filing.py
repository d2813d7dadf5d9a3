"""Pydantic schemas for Filing CRUD and lifecycle operations."""

from datetime import date, datetime

from pydantic import Field, field_validator

from app.models.filing import FilingPriority, FilingStatus, FilingType
from app.schemas.common import CamelModel
from app.schemas.validators import validate_tax_year


class FilingCreate(CamelModel):
    client_id: str
    tax_year: str
    filing_type: FilingType
    priority: FilingPriority = FilingPriority.MEDIUM
    due_date: date | None = None
    notes: str | None = Field(None, max_length=2000)
    data: dict | None = None

    @field_validator("tax_year")
    @classmethod
    def _tax_year(cls, v: str) -> str:
        return validate_tax_year(v)


class FilingUpdate(CamelModel):
    tax_year: str | None = None
    filing_type: FilingType | None = None
    priority: FilingPriority | None = None
    due_date: date | None = None
    notes: str | None = Field(None, max_length=2000)
    data: dict | None = None

    @field_validator("tax_year")
    @classmethod
    def _tax_year(cls, v: str | None) -> str | None:
        return validate_tax_year(v) if v is not None else None


class FilingStatusUpdate(CamelModel):
    status: FilingStatus
    notes: str | None = Field(None, max_length=2000)


class FilingAssignCA(CamelModel):
    ca_id: str


class FilingOut(CamelModel):
    id: str
    client_id: str
    ca_id: str | None
    tax_year: str
    filing_type: FilingType
    status: FilingStatus
    priority: FilingPriority
    due_date: date | None
    submitted_at: datetime | None
    completed_at: datetime | None
    notes: str | None
    data: dict | None
    created_at: datetime
    updated_at: datetime


class FilingStatsOut(CamelModel):
    total: int
    draft: int
    in_progress: int
    under_review: int
    completed: int
    rejected: int

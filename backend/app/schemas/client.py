"""Pydantic schemas for Client CRUD operations."""

from datetime import date, datetime

from pydantic import Field, field_validator

from app.models.client import ClientStatus
from app.schemas.auth import UserOut
from app.schemas.common import CamelModel
from app.schemas.validators import validate_aadhar, validate_pan


class ClientCreate(CamelModel):
    # Customers creating their own profile leave this empty
    user_id: str | None = None
    pan_number: str
    aadhar_number: str | None = None
    date_of_birth: date | None = None
    address: dict | None = None
    occupation: str | None = Field(None, max_length=100)
    annual_income: float | None = Field(None, ge=0)
    profile: dict | None = None

    @field_validator("pan_number")
    @classmethod
    def _pan(cls, v: str) -> str:
        return validate_pan(v)

    @field_validator("aadhar_number")
    @classmethod
    def _aadhar(cls, v: str | None) -> str | None:
        return validate_aadhar(v)


class ClientUpdate(CamelModel):
    pan_number: str | None = None
    aadhar_number: str | None = None
    date_of_birth: date | None = None
    address: dict | None = None
    occupation: str | None = Field(None, max_length=100)
    annual_income: float | None = Field(None, ge=0)
    profile: dict | None = None
    # Admin / CA only
    status: ClientStatus | None = None
    ca_id: str | None = None

    @field_validator("pan_number")
    @classmethod
    def _pan(cls, v: str | None) -> str | None:
        return validate_pan(v) if v is not None else None

    @field_validator("aadhar_number")
    @classmethod
    def _aadhar(cls, v: str | None) -> str | None:
        return validate_aadhar(v)


class AssignCARequest(CamelModel):
    ca_id: str


class ClientOut(CamelModel):
    id: str
    user_id: str
    ca_id: str | None
    pan_number: str
    aadhar_number: str | None
    date_of_birth: date | None
    address: dict | None
    occupation: str | None
    annual_income: float | None
    status: ClientStatus
    onboarding_completed: bool
    profile: dict | None
    user: UserOut | None = None
    ca: UserOut | None = None
    created_at: datetime
    updated_at: datetime


class ClientStatsOut(CamelModel):
    total: int
    active: int
    inactive: int
    suspended: int
    unassigned: int
    incomplete_onboarding: int

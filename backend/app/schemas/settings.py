from datetime import datetime

from pydantic import EmailStr, Field, model_validator

from app.models.settings import AdminRoleName, TaxRegime
from app.schemas.common import CamelModel


# ── Notifications ────────────────────────────────────────────

class NotificationSettingsUpdate(CamelModel):
    email: bool | None = None
    sms: bool | None = None
    push: bool | None = None
    weekly_reports: bool | None = None


class NotificationSettingsOut(CamelModel):
    email: bool
    sms: bool
    push: bool
    weekly_reports: bool
    updated_at: datetime | None = None


# ── Pricing plans ────────────────────────────────────────────

class PricingPlanCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    features: list[str] = Field(default_factory=list)
    status: bool = True


class PricingPlanUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    price: float | None = Field(None, ge=0)
    features: list[str] | None = None
    status: bool | None = None


class PricingPlanUpsert(PricingPlanCreate):
    id: str | None = None


class PlanStatusUpdate(CamelModel):
    status: bool


class PricingPlanOut(CamelModel):
    id: str
    name: str
    price: float
    features: list[str]
    status: bool
    created_at: datetime
    updated_at: datetime


# ── Tax slabs ────────────────────────────────────────────────

class TaxSlabCreate(CamelModel):
    regime: TaxRegime
    min_income: float = Field(..., ge=0)
    max_income: float | None = Field(None, ge=0)
    tax_rate_percent: float = Field(..., ge=0, le=100)
    surcharge_percent: float = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_range(self):
        if self.max_income is not None and self.max_income <= self.min_income:
            raise ValueError("maxIncome must be greater than minIncome")
        return self


class TaxSlabUpdate(CamelModel):
    regime: TaxRegime | None = None
    min_income: float | None = Field(None, ge=0)
    max_income: float | None = Field(None, ge=0)
    tax_rate_percent: float | None = Field(None, ge=0, le=100)
    surcharge_percent: float | None = Field(None, ge=0, le=100)


class TaxSlabUpsert(TaxSlabCreate):
    id: str | None = None


class TaxSlabOut(CamelModel):
    id: str
    regime: TaxRegime
    min_income: float
    max_income: float | None
    tax_rate_percent: float
    surcharge_percent: float
    created_at: datetime
    updated_at: datetime


# ── Admin roles ──────────────────────────────────────────────

class AdminRolesUpdate(CamelModel):
    super_admin_email: EmailStr
    support_admin_email: EmailStr


class AdminRoleOut(CamelModel):
    id: str
    role_name: AdminRoleName
    email: str
    permissions: list[str]


class AdminRolesOut(CamelModel):
    super_admin_email: str | None
    support_admin_email: str | None
    roles: list[AdminRoleOut]


# ── Save all ─────────────────────────────────────────────────

class SaveAllRequest(CamelModel):
    notifications: NotificationSettingsUpdate | None = None
    pricing_plans: list[PricingPlanUpsert] | None = None
    tax_slabs: list[TaxSlabUpsert] | None = None
    admin_roles: AdminRolesUpdate | None = None


class SaveAllOut(CamelModel):
    notifications: str | None = None
    pricing_plans: str | None = None
    tax_slabs: str | None = None
    admin_roles: str | None = None

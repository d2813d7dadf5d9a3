"""Admin-managed platform settings.

  - PricingPlan          service packages offered to customers
  - TaxSlab              income-tax slabs per regime
  - NotificationSetting  platform-wide notification defaults (single row, id=1)
  - AdminRole            which email holds the super/support admin roles
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

NOTIFICATION_SETTINGS_ID = 1


class TaxRegime(str, enum.Enum):
    OLD = "old"
    NEW = "new"


class AdminRoleName(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    SUPPORT_ADMIN = "support_admin"


# Fixed permission sets per admin role
ADMIN_ROLE_PERMISSIONS: dict[AdminRoleName, list[str]] = {
    AdminRoleName.SUPER_ADMIN: ["all"],
    AdminRoleName.SUPPORT_ADMIN: ["read_users", "manage_tickets", "view_reports"],
}


class PricingPlan(Base):
    __tablename__ = "pricing_plans"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    features: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class TaxSlab(Base):
    __tablename__ = "tax_slabs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    regime: Mapped[TaxRegime] = mapped_column(SAEnum(TaxRegime), nullable=False, index=True)
    min_income: Mapped[float] = mapped_column(Float, nullable=False)
    max_income: Mapped[float | None] = mapped_column(Float)  # null = no upper bound
    tax_rate_percent: Mapped[float] = mapped_column(Float, nullable=False)
    surcharge_percent: Mapped[float] = mapped_column(Float, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class NotificationSetting(Base):
    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=NOTIFICATION_SETTINGS_ID)
    email: Mapped[bool] = mapped_column(Boolean, default=True)
    sms: Mapped[bool] = mapped_column(Boolean, default=False)
    push: Mapped[bool] = mapped_column(Boolean, default=True)
    weekly_reports: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class AdminRole(Base):
    __tablename__ = "admin_roles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    role_name: Mapped[AdminRoleName] = mapped_column(
        SAEnum(AdminRoleName), unique=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    permissions: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

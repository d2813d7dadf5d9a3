"""Client: the tax-filing profile of a customer user.

Owned by exactly one customer (`user_id`) and optionally assigned to a
chartered accountant (`ca_id`).
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, Float, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ClientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    ca_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    pan_number: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    aadhar_number: Mapped[str | None] = mapped_column(String(12))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    address: Mapped[dict | None] = mapped_column(JSON, default=None)
    occupation: Mapped[str | None] = mapped_column(String(100))
    annual_income: Mapped[float | None] = mapped_column(Float)
    status: Mapped[ClientStatus] = mapped_column(
        SAEnum(ClientStatus), default=ClientStatus.ACTIVE
    )
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    profile: Mapped[dict | None] = mapped_column(JSON, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("User", foreign_keys=[user_id], lazy="selectin")
    ca = relationship("User", foreign_keys=[ca_id], lazy="selectin")

"""Filing: one tax return for a client, tax year and filing type."""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class FilingType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"
    CAPITAL_GAINS = "capital_gains"


class FilingStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"
    REJECTED = "rejected"


class FilingPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Allowed status moves: {from: {to, ...}}
STATUS_TRANSITIONS: dict[FilingStatus, frozenset[FilingStatus]] = {
    FilingStatus.DRAFT: frozenset({FilingStatus.IN_PROGRESS, FilingStatus.REJECTED}),
    FilingStatus.IN_PROGRESS: frozenset({
        FilingStatus.UNDER_REVIEW, FilingStatus.DRAFT, FilingStatus.REJECTED,
    }),
    FilingStatus.UNDER_REVIEW: frozenset({
        FilingStatus.COMPLETED, FilingStatus.IN_PROGRESS, FilingStatus.REJECTED,
    }),
    FilingStatus.COMPLETED: frozenset(),
    FilingStatus.REJECTED: frozenset({FilingStatus.DRAFT, FilingStatus.IN_PROGRESS}),
}


class Filing(Base):
    __tablename__ = "filings"
    __table_args__ = (
        UniqueConstraint("client_id", "tax_year", "filing_type", name="uq_filing_client_year_type"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ca_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    tax_year: Mapped[str] = mapped_column(String(9), nullable=False)  # 2024-2025
    filing_type: Mapped[FilingType] = mapped_column(SAEnum(FilingType), nullable=False)
    status: Mapped[FilingStatus] = mapped_column(
        SAEnum(FilingStatus), default=FilingStatus.DRAFT, index=True
    )
    priority: Mapped[FilingPriority] = mapped_column(
        SAEnum(FilingPriority), default=FilingPriority.MEDIUM
    )
    due_date: Mapped[date | None] = mapped_column(Date)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    notes: Mapped[str | None] = mapped_column(Text)
    data: Mapped[dict | None] = mapped_column(JSON, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    client = relationship("Client", lazy="selectin")

    def can_transition_to(self, new_status: FilingStatus) -> bool:
        return new_status in STATUS_TRANSITIONS.get(self.status, frozenset())

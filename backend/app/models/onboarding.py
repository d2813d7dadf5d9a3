"""Onboarding wizard state, per user.

Three tables:
  - onboarding_progress   one row per user: current step, completed set,
                          payment status. Created lazily on first access.
  - onboarding_step_data  one row per (user, step): the step's payload.
  - onboarding_files      metadata of files attached to a step.

Steps are strictly sequential: step N is reachable only once every step
before it is completed.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

TOTAL_STEPS = 7


class OnboardingPaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class OnboardingProgress(Base):
    __tablename__ = "onboarding_progress"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    current_step: Mapped[int] = mapped_column(Integer, default=1)
    total_steps: Mapped[int] = mapped_column(Integer, default=TOTAL_STEPS)
    # Sorted list of completed step numbers; always reassigned, never mutated in place
    completed_steps: Mapped[list] = mapped_column(JSON, default=list)
    payment_status: Mapped[OnboardingPaymentStatus] = mapped_column(
        SAEnum(OnboardingPaymentStatus), default=OnboardingPaymentStatus.PENDING
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @classmethod
    def fresh(cls, user_id: str) -> "OnboardingProgress":
        """Default state: step 1, nothing completed, payment pending."""
        return cls(
            user_id=user_id,
            current_step=1,
            total_steps=TOTAL_STEPS,
            completed_steps=[],
            payment_status=OnboardingPaymentStatus.PENDING,
            is_completed=False,
            last_updated=datetime.utcnow(),
        )

    # ── Queries ─────────────────────────────────────────────

    def is_step_completed(self, step: int) -> bool:
        return step in (self.completed_steps or [])

    def can_access_step(self, step: int) -> bool:
        """Step 1 is always open; step N needs all of 1..N-1 completed."""
        if step == 1:
            return True
        done = set(self.completed_steps or [])
        return all(s in done for s in range(1, step))

    def completion_percentage(self) -> float:
        return round(len(self.completed_steps or []) / TOTAL_STEPS * 100, 2)

    def next_accessible_step(self) -> int:
        """First step not yet completed; the last step once all are done."""
        for step in range(1, TOTAL_STEPS + 1):
            if not self.is_step_completed(step):
                return step
        return TOTAL_STEPS

    # ── Mutations ───────────────────────────────────────────

    def add_completed_step(self, step: int) -> None:
        if not self.is_step_completed(step):
            self.completed_steps = sorted((self.completed_steps or []) + [step])
        self._sync_completion()

    def remove_completed_step(self, step: int) -> None:
        if self.is_step_completed(step):
            self.completed_steps = [s for s in self.completed_steps if s != step]
        self._sync_completion()

    def touch(self) -> None:
        self.last_updated = datetime.utcnow()

    def _sync_completion(self) -> None:
        self.is_completed = len(self.completed_steps or []) == TOTAL_STEPS


class OnboardingStepRecord(Base):
    __tablename__ = "onboarding_step_data"
    __table_args__ = (
        UniqueConstraint("user_id", "step", name="uq_onboarding_step_user_step"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    # Set only when the step was explicitly marked complete
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class OnboardingFile(Base):
    __tablename__ = "onboarding_files"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    file_type: Mapped[str] = mapped_column(String(50), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    # `metadata` is reserved on declarative classes
    file_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, default=None)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

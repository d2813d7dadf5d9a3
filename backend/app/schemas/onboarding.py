"""Pydantic schemas for the 7-step onboarding wizard.

Step payloads are a tagged union keyed by step number (`STEP_PAYLOADS`).
Every payload field is optional here: which fields a step *requires* is
decided by the step config table, so a partial save still parses. Unknown
keys are kept as-is.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.onboarding import OnboardingPaymentStatus
from app.schemas.common import CamelModel


class _StepPayload(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# ── Step 1: Income types ────────────────────────────────────

class IncomeTypesData(_StepPayload):
    selected_income_types: list[str] | None = None
    timestamp: str | None = None


# ── Step 2: Documents ───────────────────────────────────────

class DocumentsData(_StepPayload):
    form16: dict | None = None
    payslips: dict | list | None = None
    offer_letter: dict | None = None
    additional_documents: list[dict] | None = None


# ── Step 3: Income details ──────────────────────────────────

class IncomeDetailsData(_StepPayload):
    business_type: str | None = None
    gross_receipts: str | float | None = None
    bank_statements: list[dict] | None = None
    gst_returns: list[dict] | None = None
    profit_loss_statements: list[dict] | None = None
    business_registration: list[dict] | None = None


# ── Step 4: Capital gains ───────────────────────────────────

class CapitalGainsData(_StepPayload):
    stocks: dict | None = None
    rsus: dict | None = None
    foreign_assets: dict | None = None
    property: dict | None = None
    jewellery: dict | None = None
    mutual_funds: dict | None = None


# ── Step 5: Other incomes ───────────────────────────────────

class OtherIncomesData(_StepPayload):
    bank_interest: dict | None = None
    dividends: dict | None = None
    agriculture: dict | None = None
    gaming: dict | None = None
    rental: dict | None = None
    other: dict | None = None


# ── Step 6: Summary ─────────────────────────────────────────

class SummaryData(_StepPayload):
    whatsapp_updates: bool | None = None
    reviewed_sections: list[str] | None = None
    confirmation_timestamp: str | None = None
    additional_notes: str | None = None
    preferred_communication: Literal["email", "sms", "whatsapp"] | None = None
    urgent_contact: bool | None = None


# ── Step 7: Payment ─────────────────────────────────────────

class PaymentData(_StepPayload):
    selected_package_id: str | int | None = None
    payment_method: str | None = None
    payment_status: Literal["pending", "completed", "failed"] | None = None
    transaction_id: str | None = None
    amount: float | None = Field(None, ge=0)
    currency: str | None = None
    payment_timestamp: str | None = None
    payment_gateway: str | None = None
    order_id: str | None = None
    discount_code: str | None = None
    discount_amount: float | None = Field(None, ge=0)


STEP_PAYLOADS: dict[int, type[_StepPayload]] = {
    1: IncomeTypesData,
    2: DocumentsData,
    3: IncomeDetailsData,
    4: CapitalGainsData,
    5: OtherIncomesData,
    6: SummaryData,
    7: PaymentData,
}


# ── Requests ────────────────────────────────────────────────

class ProgressAction(str, Enum):
    NAVIGATE = "navigate"
    COMPLETE_PAYMENT = "complete_payment"
    FAIL_PAYMENT = "fail_payment"
    RESET = "reset"


class SaveStepRequest(CamelModel):
    step: int = Field(..., ge=1, le=7)
    step_name: str = Field(..., min_length=1, max_length=50)
    data: dict[str, Any]
    mark_as_completed: bool = False


class UpdateProgressRequest(CamelModel):
    current_step: int | None = Field(None, ge=1, le=7)
    action: ProgressAction | None = None
    additional_data: dict[str, Any] | None = None


class AttachFileRequest(CamelModel):
    step: int = Field(..., ge=1, le=7)
    file_type: str = Field(..., min_length=1, max_length=50)
    original_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_size: int = Field(..., ge=1)
    mime_type: str = Field(..., min_length=1, max_length=100)
    metadata: dict[str, Any] | None = None

    @field_validator("original_name", "file_path", "file_type", "mime_type")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


# ── Responses ───────────────────────────────────────────────

class ProgressOut(CamelModel):
    user_id: str
    current_step: int
    total_steps: int
    completed_steps: list[int]
    payment_status: OnboardingPaymentStatus
    is_completed: bool
    last_updated: datetime
    completion_percentage: float


class StepRecordOut(CamelModel):
    step: int
    step_name: str
    data: dict[str, Any]
    completed_at: datetime | None
    updated_at: datetime


class FileOut(CamelModel):
    id: str
    step: int
    file_type: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    metadata: dict[str, Any] | None = Field(None, validation_alias="file_metadata")
    uploaded_at: datetime


class FileUploadPolicyOut(CamelModel):
    required: list[str]
    optional: list[str]
    max_files: int
    max_file_size: int
    allowed_types: list[str]


class StepConfigOut(CamelModel):
    step_number: int
    step_name: str
    title: str
    description: str
    required_fields: list[str]
    optional_fields: list[str]
    file_uploads: FileUploadPolicyOut


class OnboardingOut(CamelModel):
    progress: ProgressOut
    step_data: StepRecordOut | None = None
    all_steps_data: list[StepRecordOut] | None = None
    files: list[FileOut]
    step_config: StepConfigOut | None = None


class CompletionOut(CamelModel):
    completion_percentage: float


class NextStepOut(CamelModel):
    next_step: int
    step_name: str


class ResetOut(CamelModel):
    step: int | None = None
    message: str

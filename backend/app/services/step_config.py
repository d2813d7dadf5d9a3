"""Static policy table for the 7 onboarding steps.

`STEP_CONFIGS` and `STEP_NAMES` are read-only mappings built once at import;
nothing mutates them at runtime. The helpers here validate a step number,
a step payload and a file attachment against the table and return (or
raise with) every failing message at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from app.middleware.exceptions import ValidationFailedError
from app.models.onboarding import TOTAL_STEPS
from app.schemas.onboarding import STEP_PAYLOADS

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
DOCUMENT_MIME_TYPES = ("application/pdf", "image/jpeg", "image/png")


@dataclass(frozen=True)
class FileUploadPolicy:
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    max_files: int = 0
    max_file_size: int = MAX_FILE_SIZE
    allowed_types: tuple[str, ...] = DOCUMENT_MIME_TYPES

    @property
    def accepts_files(self) -> bool:
        return self.max_files > 0


@dataclass(frozen=True)
class StepConfig:
    step_number: int
    step_name: str
    title: str
    description: str
    required_fields: tuple[str, ...] = ()
    optional_fields: tuple[str, ...] = ()
    file_uploads: FileUploadPolicy = field(default_factory=FileUploadPolicy)


STEP_CONFIGS: Mapping[int, StepConfig] = MappingProxyType({
    1: StepConfig(
        step_number=1,
        step_name="income-types",
        title="Income Type Selection",
        description="Select your income sources",
        required_fields=("selectedIncomeTypes",),
    ),
    2: StepConfig(
        step_number=2,
        step_name="documents",
        title="Document Upload",
        description="Upload required documents",
        optional_fields=("form16", "payslips", "offerLetter"),
        file_uploads=FileUploadPolicy(
            required=("form16",),
            optional=("payslips", "offerLetter"),
            max_files=10,
        ),
    ),
    3: StepConfig(
        step_number=3,
        step_name="income-details",
        title="Income Details",
        description="Business income details, bank statements, GST returns",
        required_fields=("businessType",),
        optional_fields=("grossReceipts", "bankStatements", "gstReturns"),
        file_uploads=FileUploadPolicy(
            optional=("bankStatements", "gstReturns", "profitLossStatements"),
            max_files=15,
        ),
    ),
    4: StepConfig(
        step_number=4,
        step_name="capital-gains",
        title="Capital Gains",
        description="Upload capital gains documents (stocks, property, etc.)",
        optional_fields=("stocks", "rsus", "property", "mutualFunds"),
        file_uploads=FileUploadPolicy(
            optional=("stocks", "property", "mutualFunds"),
            max_files=20,
        ),
    ),
    5: StepConfig(
        step_number=5,
        step_name="other-incomes",
        title="Other Incomes",
        description="Interest/dividends, agriculture, gaming income",
        optional_fields=("bankInterest", "dividends", "agriculture", "gaming", "rental"),
        file_uploads=FileUploadPolicy(
            optional=("bankInterest", "dividends", "agriculture"),
            max_files=10,
        ),
    ),
    6: StepConfig(
        step_number=6,
        step_name="summary",
        title="Summary",
        description="Review all data with edit options",
        required_fields=("reviewedSections", "confirmationTimestamp"),
        optional_fields=("whatsappUpdates", "additionalNotes"),
    ),
    7: StepConfig(
        step_number=7,
        step_name="payment",
        title="Payment",
        description="Select package and complete payment",
        required_fields=("selectedPackageId", "amount", "paymentMethod"),
        optional_fields=("discountCode", "paymentGateway"),
    ),
})

STEP_NAMES: Mapping[int, str] = MappingProxyType(
    {number: config.step_name for number, config in STEP_CONFIGS.items()}
)


# ── Lookups ─────────────────────────────────────────────────

def check_step_number(step: int) -> None:
    if not isinstance(step, int) or not 1 <= step <= TOTAL_STEPS:
        raise ValidationFailedError(
            "Invalid step number",
            errors=[f"step must be between 1 and {TOTAL_STEPS}"],
        )


def get_step_config(step: int) -> StepConfig:
    check_step_number(step)
    return STEP_CONFIGS[step]


def check_step_name(step: int, step_name: str) -> None:
    expected = get_step_config(step).step_name
    if step_name != expected:
        raise ValidationFailedError(
            "Invalid step name",
            errors=[f'Step name should be "{expected}" for step {step}'],
        )


# ── Payload validation ──────────────────────────────────────

def _is_blank(value: Any) -> bool:
    # 0 and False are real answers; only absent/empty values are missing
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def validate_step_data(step: int, data: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Check `data` against the step's schema, required fields and rules.

    Returns the normalised payload (camelCase keys, unknown keys kept) and
    the full list of error messages; the list is empty when the payload is
    valid.
    """
    config = get_step_config(step)
    errors: list[str] = []
    normalised = dict(data)

    try:
        payload = STEP_PAYLOADS[step].model_validate(data)
        normalised = payload.model_dump(by_alias=True, exclude_unset=True)
    except ValidationError as exc:
        for err in exc.errors():
            loc = ".".join(str(part) for part in err["loc"])
            errors.append(f"{loc}: {err['msg']}")

    for name in config.required_fields:
        if _is_blank(normalised.get(name)):
            errors.append(f"{name} is required")

    # Step-specific rules
    if step == 1 and _is_blank(normalised.get("selectedIncomeTypes")):
        errors.append("At least one income type must be selected")
    if step == 6 and _is_blank(normalised.get("reviewedSections")):
        errors.append("At least one section must be reviewed")
    if step == 7 and (
        _is_blank(normalised.get("selectedPackageId")) or normalised.get("amount") is None
    ):
        errors.append("Package selection and amount are required")

    return normalised, errors


# ── File attachment policy ──────────────────────────────────

def validate_file(step: int, mime_type: str, file_size: int, existing_count: int) -> list[str]:
    """Messages for every way an attachment breaks the step's file policy."""
    policy = get_step_config(step).file_uploads
    if not policy.accepts_files:
        return [f"Step {step} does not accept file uploads"]

    errors: list[str] = []
    if mime_type not in policy.allowed_types:
        errors.append(
            f"File type {mime_type} is not allowed; use {', '.join(policy.allowed_types)}"
        )
    if file_size > policy.max_file_size:
        errors.append(f"File exceeds the {policy.max_file_size // (1024 * 1024)} MB limit")
    if existing_count >= policy.max_files:
        errors.append(f"Step {step} accepts at most {policy.max_files} files")
    return errors

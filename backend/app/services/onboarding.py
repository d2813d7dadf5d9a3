"""Onboarding wizard service: progress tracker, step data and files.

Every function works inside the caller's session and only flushes; the
request-scoped transaction in `get_db` commits or rolls back the lot. Any
error raised here therefore leaves progress, step data and files exactly
as they were, `last_updated` included.

Writes lock the user's progress row (`SELECT ... FOR UPDATE`) before
reading it, so concurrent saves for the same user serialise while saves
for different users never touch the same row.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import (
    ForbiddenTransitionError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from app.models.onboarding import (
    TOTAL_STEPS,
    OnboardingFile,
    OnboardingPaymentStatus,
    OnboardingProgress,
    OnboardingStepRecord,
)
from app.schemas.onboarding import (
    AttachFileRequest,
    FileOut,
    OnboardingOut,
    ProgressAction,
    ProgressOut,
    StepConfigOut,
    StepRecordOut,
)
from app.services.step_config import (
    STEP_NAMES,
    check_step_name,
    check_step_number,
    get_step_config,
    validate_file,
    validate_step_data,
)

logger = logging.getLogger(__name__)


# ── Progress tracker ────────────────────────────────────────

async def get_progress(
    db: AsyncSession,
    user_id: str,
    *,
    for_update: bool = False,
) -> OnboardingProgress:
    """Return the user's progress row, creating the default one if absent."""
    query = select(OnboardingProgress).where(OnboardingProgress.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    progress = (await db.execute(query)).scalar_one_or_none()
    if not progress:
        progress = OnboardingProgress.fresh(user_id)
        db.add(progress)
        await db.flush()
    return progress


def apply_action(
    progress: OnboardingProgress,
    action: ProgressAction,
    target_step: int | None = None,
) -> None:
    """Apply one state-machine transition to `progress` in memory."""
    if action == ProgressAction.NAVIGATE:
        if target_step is None:
            raise ValidationFailedError(
                "Target step is required", errors=["currentStep is required for navigate"]
            )
        check_step_number(target_step)
        if not progress.can_access_step(target_step):
            raise ForbiddenTransitionError(
                "Cannot navigate to this step. Complete previous steps first."
            )
        progress.current_step = target_step

    elif action == ProgressAction.COMPLETE_PAYMENT:
        progress.payment_status = OnboardingPaymentStatus.COMPLETED
        progress.add_completed_step(TOTAL_STEPS)
        progress.is_completed = True

    elif action == ProgressAction.FAIL_PAYMENT:
        progress.payment_status = OnboardingPaymentStatus.FAILED
        progress.remove_completed_step(TOTAL_STEPS)
        progress.is_completed = False

    elif action == ProgressAction.RESET:
        # Soft reset: step data and files stay in place
        progress.current_step = 1
        progress.completed_steps = []
        progress.is_completed = False
        progress.payment_status = OnboardingPaymentStatus.PENDING

    progress.touch()


async def update_progress(
    db: AsyncSession,
    user_id: str,
    action: ProgressAction | None,
    current_step: int | None = None,
    additional_data: dict | None = None,
) -> OnboardingProgress:
    """Apply a progress action. A bare `current_step` means navigate."""
    if action is None:
        if current_step is None:
            raise ValidationFailedError(
                "Nothing to update", errors=["action or currentStep is required"]
            )
        action = ProgressAction.NAVIGATE

    progress = await get_progress(db, user_id, for_update=True)
    apply_action(progress, action, current_step)
    await db.flush()

    logger.info(
        "Onboarding progress %s for user %s",
        action.value,
        user_id,
        extra={"additional_data": additional_data} if additional_data else None,
    )
    return progress


def progress_out(progress: OnboardingProgress) -> ProgressOut:
    return ProgressOut(
        user_id=progress.user_id,
        current_step=progress.current_step,
        total_steps=progress.total_steps,
        completed_steps=sorted(progress.completed_steps or []),
        payment_status=progress.payment_status,
        is_completed=progress.is_completed,
        last_updated=progress.last_updated,
        completion_percentage=progress.completion_percentage(),
    )


async def completion_percentage(db: AsyncSession, user_id: str) -> float:
    progress = await get_progress(db, user_id)
    return progress.completion_percentage()


async def next_step(db: AsyncSession, user_id: str) -> tuple[int, str]:
    progress = await get_progress(db, user_id)
    step = progress.next_accessible_step()
    return step, STEP_NAMES[step]


# ── Step data ───────────────────────────────────────────────

async def get_step(db: AsyncSession, user_id: str, step: int) -> OnboardingStepRecord | None:
    check_step_number(step)
    result = await db.execute(
        select(OnboardingStepRecord).where(
            OnboardingStepRecord.user_id == user_id,
            OnboardingStepRecord.step == step,
        )
    )
    return result.scalar_one_or_none()


async def get_all_steps(db: AsyncSession, user_id: str) -> list[OnboardingStepRecord]:
    result = await db.execute(
        select(OnboardingStepRecord)
        .where(OnboardingStepRecord.user_id == user_id)
        .order_by(OnboardingStepRecord.step)
    )
    return list(result.scalars().all())


async def save_step(
    db: AsyncSession,
    user_id: str,
    step: int,
    step_name: str,
    data: dict,
    mark_completed: bool = False,
) -> OnboardingStepRecord:
    """Validate and upsert one step's payload, then update progress.

    Order matters: step number, step name, gating, then payload. Nothing
    is written until all four pass.
    """
    check_step_number(step)
    check_step_name(step, step_name)

    progress = await get_progress(db, user_id, for_update=True)
    if not progress.can_access_step(step):
        raise ForbiddenTransitionError(
            f"Step {step} is locked. Complete previous steps first."
        )

    payload, errors = validate_step_data(step, data)
    if errors:
        raise ValidationFailedError("Validation failed", errors=errors)

    now = datetime.utcnow()
    record = await get_step(db, user_id, step)
    if record is None:
        record = OnboardingStepRecord(user_id=user_id, step=step)
        db.add(record)
    record.step_name = step_name
    record.data = payload
    # The payment step completes only through complete_payment
    completed = mark_completed and step != TOTAL_STEPS
    if completed:
        record.completed_at = now
        progress.add_completed_step(step)

    if step > progress.current_step:
        progress.current_step = step
    progress.touch()
    await db.flush()

    logger.info(
        "Saved onboarding step %d (%s) for user %s%s",
        step, step_name, user_id, " [completed]" if completed else "",
    )
    return record


async def reset_step(db: AsyncSession, user_id: str, step: int) -> None:
    """Drop one step's data and retract its completion."""
    check_step_number(step)
    progress = await get_progress(db, user_id, for_update=True)
    await db.execute(
        delete(OnboardingStepRecord).where(
            OnboardingStepRecord.user_id == user_id,
            OnboardingStepRecord.step == step,
        )
    )
    progress.remove_completed_step(step)
    progress.touch()
    await db.flush()
    logger.info("Reset onboarding step %d for user %s", step, user_id)


async def reset_all(db: AsyncSession, user_id: str) -> None:
    """Hard reset: step data, files and the progress row all go."""
    await db.execute(delete(OnboardingStepRecord).where(OnboardingStepRecord.user_id == user_id))
    await db.execute(delete(OnboardingFile).where(OnboardingFile.user_id == user_id))
    await db.execute(delete(OnboardingProgress).where(OnboardingProgress.user_id == user_id))
    await db.flush()
    logger.info("Reset all onboarding data for user %s", user_id)


# ── Files ───────────────────────────────────────────────────

async def list_files(
    db: AsyncSession,
    user_id: str,
    step: int | None = None,
) -> list[OnboardingFile]:
    """Files for one step (or all steps), most recent first."""
    query = select(OnboardingFile).where(OnboardingFile.user_id == user_id)
    if step is not None:
        check_step_number(step)
        query = query.where(OnboardingFile.step == step)
    result = await db.execute(query.order_by(OnboardingFile.uploaded_at.desc()))
    return list(result.scalars().all())


async def attach_file(db: AsyncSession, user_id: str, body: AttachFileRequest) -> OnboardingFile:
    """Record metadata for a file the storage layer has already accepted."""
    check_step_number(body.step)
    # Serialises concurrent attaches so the max-files count holds
    await get_progress(db, user_id, for_update=True)
    existing = (
        await db.execute(
            select(func.count(OnboardingFile.id)).where(
                OnboardingFile.user_id == user_id,
                OnboardingFile.step == body.step,
            )
        )
    ).scalar() or 0

    errors = validate_file(body.step, body.mime_type, body.file_size, existing)
    if errors:
        raise ValidationFailedError("File rejected", errors=errors)

    file = OnboardingFile(
        user_id=user_id,
        step=body.step,
        file_type=body.file_type,
        original_name=body.original_name,
        file_path=body.file_path,
        file_size=body.file_size,
        mime_type=body.mime_type,
        file_metadata=body.metadata,
        uploaded_at=datetime.utcnow(),
    )
    db.add(file)
    await db.flush()
    logger.info("Attached %s to onboarding step %d for user %s", body.file_type, body.step, user_id)
    return file


async def delete_file(db: AsyncSession, user_id: str, file_id: str) -> None:
    result = await db.execute(
        select(OnboardingFile).where(
            OnboardingFile.id == file_id,
            OnboardingFile.user_id == user_id,
        )
    )
    file = result.scalar_one_or_none()
    if not file:
        raise ResourceNotFoundError("File")
    await db.delete(file)
    await db.flush()


# ── Aggregate view ──────────────────────────────────────────

async def get_onboarding(db: AsyncSession, user_id: str, step: int | None = None) -> OnboardingOut:
    """Progress plus either one step's data and config, or every step's data."""
    progress = await get_progress(db, user_id)
    files = await list_files(db, user_id)

    step_data = None
    all_steps = None
    step_config = None
    if step is not None:
        record = await get_step(db, user_id, step)
        step_data = StepRecordOut.model_validate(record) if record else None
        step_config = StepConfigOut.model_validate(get_step_config(step))
    else:
        all_steps = [StepRecordOut.model_validate(r) for r in await get_all_steps(db, user_id)]

    return OnboardingOut(
        progress=progress_out(progress),
        step_data=step_data,
        all_steps_data=all_steps,
        files=[FileOut.model_validate(f) for f in files],
        step_config=step_config,
    )

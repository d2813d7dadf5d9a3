"""Onboarding wizard: 7 sequential steps with save/resume.

Endpoints:
  GET    /api/onboarding/                 → progress + step data + files
  POST   /api/onboarding/                 → save one step's data
  PUT    /api/onboarding/                 → navigate / complete_payment / fail_payment / reset
  DELETE /api/onboarding/?step=N          → reset one step, or everything without `step`
  GET    /api/onboarding/files?step=N     → files attached to a step
  POST   /api/onboarding/files            → record an uploaded file
  DELETE /api/onboarding/files/{file_id}  → forget one file
  GET    /api/onboarding/config?step=N    → static step configuration
  GET    /api/onboarding/progress         → completion percentage
  GET    /api/onboarding/next-step        → first incomplete step

Design:
  - Step N is only reachable once steps 1..N-1 are completed.
  - PUT `reset` is a soft reset (progress only); DELETE without a step is a
    hard reset that also drops step data and files.
  - Every route acts on the caller's own onboarding only.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.onboarding import (
    AttachFileRequest,
    CompletionOut,
    FileOut,
    NextStepOut,
    OnboardingOut,
    ProgressOut,
    ResetOut,
    SaveStepRequest,
    StepConfigOut,
    UpdateProgressRequest,
)
from app.services import onboarding as service
from app.services.step_config import STEP_CONFIGS, get_step_config

router = APIRouter()


@router.get("/", response_model=ApiResponse[OnboardingOut])
async def get_onboarding(
    step: int | None = Query(None, ge=1, le=7),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Current progress, plus one step's data and config when `step` is given."""
    data = await service.get_onboarding(db, user.id, step)
    return ApiResponse(message="Onboarding data retrieved successfully", data=data)


@router.post("/", response_model=ApiResponse[OnboardingOut])
async def save_step(
    body: SaveStepRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Save a step's payload, optionally marking the step completed."""
    await service.save_step(
        db,
        user.id,
        body.step,
        body.step_name,
        body.data,
        mark_completed=body.mark_as_completed,
    )
    data = await service.get_onboarding(db, user.id, body.step)
    return ApiResponse(message="Onboarding data saved successfully", data=data)


@router.put("/", response_model=ApiResponse[ProgressOut])
async def update_progress(
    body: UpdateProgressRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    progress = await service.update_progress(
        db, user.id, body.action, body.current_step, body.additional_data
    )
    return ApiResponse(
        message="Progress updated successfully", data=service.progress_out(progress)
    )


@router.delete("/", response_model=ApiResponse[ResetOut])
async def reset_onboarding(
    step: int | None = Query(None, ge=1, le=7),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Reset one step, or wipe all onboarding data when no step is given."""
    if step is not None:
        await service.reset_step(db, user.id, step)
        message = f"Step {step} reset successfully"
    else:
        await service.reset_all(db, user.id)
        message = "All onboarding data reset successfully"
    return ApiResponse(message=message, data=ResetOut(step=step, message=message))


# ── Files ────────────────────────────────────────────────────

@router.get("/files", response_model=ApiResponse[list[FileOut]])
async def list_files(
    step: int = Query(..., ge=1, le=7),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    files = await service.list_files(db, user.id, step)
    return ApiResponse(
        message="Files retrieved successfully",
        data=[FileOut.model_validate(f) for f in files],
    )


@router.post("/files", response_model=ApiResponse[FileOut], status_code=status.HTTP_201_CREATED)
async def attach_file(
    body: AttachFileRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Record metadata for a file already handed to storage."""
    file = await service.attach_file(db, user.id, body)
    return ApiResponse(
        message="File information saved successfully", data=FileOut.model_validate(file)
    )


@router.delete("/files/{file_id}", response_model=ApiResponse[None])
async def delete_file(
    file_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await service.delete_file(db, user.id, file_id)
    return ApiResponse(message="File deleted successfully")


# ── Static config & summaries ────────────────────────────────

@router.get("/config", response_model=ApiResponse[StepConfigOut | list[StepConfigOut]])
async def get_config(
    step: int | None = Query(None, ge=1, le=7),
    _user: User = Depends(get_current_user),
):
    if step is not None:
        data = StepConfigOut.model_validate(get_step_config(step))
    else:
        data = [StepConfigOut.model_validate(c) for c in STEP_CONFIGS.values()]
    return ApiResponse(message="Step configuration retrieved successfully", data=data)


@router.get("/progress", response_model=ApiResponse[CompletionOut])
async def get_completion(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    percentage = await service.completion_percentage(db, user.id)
    return ApiResponse(
        message="Completion percentage retrieved successfully",
        data=CompletionOut(completion_percentage=percentage),
    )


@router.get("/next-step", response_model=ApiResponse[NextStepOut])
async def get_next_step(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    step, name = await service.next_step(db, user.id)
    return ApiResponse(
        message="Next accessible step retrieved successfully",
        data=NextStepOut(next_step=step, step_name=name),
    )

"""Admin settings router. Every route requires the admin role.

Endpoints:
    GET    /api/settings/notifications
    PUT    /api/settings/notifications
    GET    /api/settings/pricing-plans
    POST   /api/settings/pricing-plans
    PUT    /api/settings/pricing-plans/{plan_id}
    PATCH  /api/settings/pricing-plans/{plan_id}/status
    DELETE /api/settings/pricing-plans/{plan_id}
    GET    /api/settings/tax-slabs?regime=old|new
    POST   /api/settings/tax-slabs
    PUT    /api/settings/tax-slabs/{slab_id}
    DELETE /api/settings/tax-slabs/{slab_id}
    GET    /api/settings/admin-roles
    PUT    /api/settings/admin-roles
    POST   /api/settings/save-all          All of the above in one transaction
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_admin
from app.database import get_db
from app.models.settings import TaxRegime
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.settings import (
    AdminRolesOut,
    AdminRolesUpdate,
    NotificationSettingsOut,
    NotificationSettingsUpdate,
    PlanStatusUpdate,
    PricingPlanCreate,
    PricingPlanOut,
    PricingPlanUpdate,
    SaveAllOut,
    SaveAllRequest,
    TaxSlabCreate,
    TaxSlabOut,
    TaxSlabUpdate,
)
from app.services import settings as service

router = APIRouter()


# ── Notifications ────────────────────────────────────────────

@router.get("/notifications", response_model=ApiResponse[NotificationSettingsOut])
async def get_notifications(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    row = await service.get_notification_settings(db)
    return ApiResponse(
        message="Notification settings retrieved successfully",
        data=NotificationSettingsOut.model_validate(row),
    )


@router.put("/notifications", response_model=ApiResponse[NotificationSettingsOut])
async def update_notifications(
    body: NotificationSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    row = await service.update_notification_settings(db, body)
    return ApiResponse(
        message="Notification settings updated successfully",
        data=NotificationSettingsOut.model_validate(row),
    )


# ── Pricing plans ────────────────────────────────────────────

@router.get("/pricing-plans", response_model=ApiResponse[list[PricingPlanOut]])
async def list_plans(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    plans = await service.list_plans(db)
    return ApiResponse(
        message="Pricing plans retrieved successfully",
        data=[PricingPlanOut.model_validate(p) for p in plans],
    )


@router.post(
    "/pricing-plans",
    response_model=ApiResponse[PricingPlanOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_plan(
    body: PricingPlanCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    plan = await service.create_plan(db, body)
    return ApiResponse(
        message="Pricing plan created successfully", data=PricingPlanOut.model_validate(plan)
    )


@router.put("/pricing-plans/{plan_id}", response_model=ApiResponse[PricingPlanOut])
async def update_plan(
    plan_id: str,
    body: PricingPlanUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    plan = await service.update_plan(db, plan_id, body)
    return ApiResponse(
        message="Pricing plan updated successfully", data=PricingPlanOut.model_validate(plan)
    )


@router.patch("/pricing-plans/{plan_id}/status", response_model=ApiResponse[PricingPlanOut])
async def toggle_plan_status(
    plan_id: str,
    body: PlanStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    plan = await service.set_plan_status(db, plan_id, body.status)
    return ApiResponse(
        message="Pricing plan status updated successfully",
        data=PricingPlanOut.model_validate(plan),
    )


@router.delete("/pricing-plans/{plan_id}", response_model=ApiResponse[None])
async def delete_plan(
    plan_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await service.delete_plan(db, plan_id)
    return ApiResponse(message="Pricing plan deleted successfully")


# ── Tax slabs ────────────────────────────────────────────────

@router.get("/tax-slabs", response_model=ApiResponse[list[TaxSlabOut]])
async def list_slabs(
    regime: TaxRegime | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    slabs = await service.list_slabs(db, regime)
    return ApiResponse(
        message="Tax slabs retrieved successfully",
        data=[TaxSlabOut.model_validate(s) for s in slabs],
    )


@router.post("/tax-slabs", response_model=ApiResponse[TaxSlabOut], status_code=status.HTTP_201_CREATED)
async def create_slab(
    body: TaxSlabCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    slab = await service.create_slab(db, body)
    return ApiResponse(message="Tax slab created successfully", data=TaxSlabOut.model_validate(slab))


@router.put("/tax-slabs/{slab_id}", response_model=ApiResponse[TaxSlabOut])
async def update_slab(
    slab_id: str,
    body: TaxSlabUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    slab = await service.update_slab(db, slab_id, body)
    return ApiResponse(message="Tax slab updated successfully", data=TaxSlabOut.model_validate(slab))


@router.delete("/tax-slabs/{slab_id}", response_model=ApiResponse[None])
async def delete_slab(
    slab_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await service.delete_slab(db, slab_id)
    return ApiResponse(message="Tax slab deleted successfully")


# ── Admin roles ──────────────────────────────────────────────

@router.get("/admin-roles", response_model=ApiResponse[AdminRolesOut])
async def get_admin_roles(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    roles = await service.get_admin_roles(db)
    return ApiResponse(message="Admin roles retrieved successfully", data=roles)


@router.put("/admin-roles", response_model=ApiResponse[AdminRolesOut])
async def update_admin_roles(
    body: AdminRolesUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    roles = await service.update_admin_roles(
        db, body.super_admin_email, body.support_admin_email
    )
    return ApiResponse(message="Admin roles updated successfully", data=roles)


# ── Save all ─────────────────────────────────────────────────

@router.post("/save-all", response_model=ApiResponse[SaveAllOut])
async def save_all(
    body: SaveAllRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """Apply notifications, plans, slabs and admin roles together, or none of them."""
    result = await service.save_all(db, body)
    return ApiResponse(message="All settings saved successfully", data=result)

"""Admin-managed platform settings.

The notification defaults live in a single row (id 1) created on first
read. Admin roles are keyed by role name, so saving them is an upsert.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError, ValidationFailedError
from app.models.settings import (
    ADMIN_ROLE_PERMISSIONS,
    NOTIFICATION_SETTINGS_ID,
    AdminRole,
    AdminRoleName,
    NotificationSetting,
    PricingPlan,
    TaxRegime,
    TaxSlab,
)
from app.schemas.settings import (
    AdminRoleOut,
    AdminRolesOut,
    NotificationSettingsUpdate,
    PricingPlanCreate,
    PricingPlanUpdate,
    PricingPlanUpsert,
    SaveAllOut,
    SaveAllRequest,
    TaxSlabCreate,
    TaxSlabUpdate,
    TaxSlabUpsert,
)

logger = logging.getLogger(__name__)


# ── Notifications ───────────────────────────────────────────

async def get_notification_settings(db: AsyncSession) -> NotificationSetting:
    result = await db.execute(
        select(NotificationSetting).where(NotificationSetting.id == NOTIFICATION_SETTINGS_ID)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = NotificationSetting(
            id=NOTIFICATION_SETTINGS_ID,
            email=True,
            sms=False,
            push=True,
            weekly_reports=True,
        )
        db.add(row)
        await db.flush()
    return row


async def update_notification_settings(
    db: AsyncSession, body: NotificationSettingsUpdate
) -> NotificationSetting:
    row = await get_notification_settings(db)
    for key, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, key, value)
    await db.flush()
    return row


# ── Pricing plans ───────────────────────────────────────────

async def list_plans(db: AsyncSession) -> list[PricingPlan]:
    result = await db.execute(select(PricingPlan).order_by(PricingPlan.created_at))
    return list(result.scalars().all())


async def get_plan(db: AsyncSession, plan_id: str) -> PricingPlan:
    plan = await db.get(PricingPlan, plan_id)
    if not plan:
        raise ResourceNotFoundError("Pricing plan")
    return plan


async def create_plan(db: AsyncSession, body: PricingPlanCreate) -> PricingPlan:
    plan = PricingPlan(
        name=body.name.strip(),
        price=body.price,
        features=list(body.features),
        status=body.status,
    )
    db.add(plan)
    await db.flush()
    logger.info("Created pricing plan %s", plan.id)
    return plan


async def update_plan(db: AsyncSession, plan_id: str, body: PricingPlanUpdate) -> PricingPlan:
    plan = await get_plan(db, plan_id)
    for key, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(plan, key, list(value) if key == "features" else value)
    await db.flush()
    return plan


async def set_plan_status(db: AsyncSession, plan_id: str, status: bool) -> PricingPlan:
    plan = await get_plan(db, plan_id)
    plan.status = status
    await db.flush()
    return plan


async def delete_plan(db: AsyncSession, plan_id: str) -> None:
    plan = await get_plan(db, plan_id)
    await db.delete(plan)
    await db.flush()


async def _upsert_plan(db: AsyncSession, body: PricingPlanUpsert) -> PricingPlan:
    if body.id:
        return await update_plan(
            db, body.id, PricingPlanUpdate(**body.model_dump(exclude={"id"}))
        )
    return await create_plan(db, body)


# ── Tax slabs ───────────────────────────────────────────────

async def list_slabs(db: AsyncSession, regime: TaxRegime | None = None) -> list[TaxSlab]:
    query = select(TaxSlab)
    if regime is not None:
        query = query.where(TaxSlab.regime == regime)
    result = await db.execute(query.order_by(TaxSlab.regime, TaxSlab.min_income))
    return list(result.scalars().all())


async def get_slab(db: AsyncSession, slab_id: str) -> TaxSlab:
    slab = await db.get(TaxSlab, slab_id)
    if not slab:
        raise ResourceNotFoundError("Tax slab")
    return slab


async def create_slab(db: AsyncSession, body: TaxSlabCreate) -> TaxSlab:
    slab = TaxSlab(**body.model_dump(exclude={"id"}))
    db.add(slab)
    await db.flush()
    return slab


async def update_slab(db: AsyncSession, slab_id: str, body: TaxSlabUpdate) -> TaxSlab:
    slab = await get_slab(db, slab_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(slab, key, value)
    # Range is checked on the merged row, not just the fields sent
    if slab.max_income is not None and slab.max_income <= slab.min_income:
        raise ValidationFailedError(errors=["maxIncome must be greater than minIncome"])
    await db.flush()
    return slab


async def delete_slab(db: AsyncSession, slab_id: str) -> None:
    slab = await get_slab(db, slab_id)
    await db.delete(slab)
    await db.flush()


async def _upsert_slab(db: AsyncSession, body: TaxSlabUpsert) -> TaxSlab:
    if body.id:
        return await update_slab(
            db, body.id, TaxSlabUpdate(**body.model_dump(exclude={"id"}))
        )
    return await create_slab(db, body)


# ── Admin roles ─────────────────────────────────────────────

async def get_admin_roles(db: AsyncSession) -> AdminRolesOut:
    result = await db.execute(select(AdminRole).order_by(AdminRole.role_name))
    roles = list(result.scalars().all())
    by_name = {r.role_name: r.email for r in roles}
    return AdminRolesOut(
        super_admin_email=by_name.get(AdminRoleName.SUPER_ADMIN),
        support_admin_email=by_name.get(AdminRoleName.SUPPORT_ADMIN),
        roles=[AdminRoleOut.model_validate(r) for r in roles],
    )


async def _upsert_role(db: AsyncSession, name: AdminRoleName, email: str) -> None:
    result = await db.execute(select(AdminRole).where(AdminRole.role_name == name))
    role = result.scalar_one_or_none()
    if role is None:
        role = AdminRole(role_name=name)
        db.add(role)
    role.email = email.lower()
    role.permissions = list(ADMIN_ROLE_PERMISSIONS[name])


async def update_admin_roles(
    db: AsyncSession, super_admin_email: str, support_admin_email: str
) -> AdminRolesOut:
    await _upsert_role(db, AdminRoleName.SUPER_ADMIN, super_admin_email)
    await _upsert_role(db, AdminRoleName.SUPPORT_ADMIN, support_admin_email)
    await db.flush()
    logger.info("Admin roles updated")
    return await get_admin_roles(db)


# ── Save all ────────────────────────────────────────────────

async def save_all(db: AsyncSession, body: SaveAllRequest) -> SaveAllOut:
    """Apply every section present in `body` inside the request transaction."""
    out = SaveAllOut()
    if body.notifications is not None:
        await update_notification_settings(db, body.notifications)
        out.notifications = "updated"
    if body.pricing_plans is not None:
        for plan in body.pricing_plans:
            await _upsert_plan(db, plan)
        out.pricing_plans = f"{len(body.pricing_plans)} plans updated"
    if body.tax_slabs is not None:
        for slab in body.tax_slabs:
            await _upsert_slab(db, slab)
        out.tax_slabs = f"{len(body.tax_slabs)} slabs updated"
    if body.admin_roles is not None:
        await update_admin_roles(
            db, body.admin_roles.super_admin_email, body.admin_roles.support_admin_email
        )
        out.admin_roles = "updated"
    await db.flush()
    return out

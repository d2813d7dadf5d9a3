"""Filing lifecycle.

Status moves follow `STATUS_TRANSITIONS`:

    draft         -> in_progress, rejected
    in_progress   -> under_review, draft, rejected
    under_review  -> completed, in_progress, rejected
    completed     -> (terminal)
    rejected      -> draft, in_progress

Entering `under_review` stamps `submitted_at`; entering `completed` stamps
`completed_at`. Each status change notifies the client's user.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import ensure_can_access, ensure_role, scope_clause
from app.middleware.exceptions import ConflictError, ResourceNotFoundError, ValidationFailedError
from app.models.client import Client
from app.models.filing import Filing, FilingStatus, FilingType
from app.models.notification import NotificationCategory, NotificationType
from app.models.user import User, UserRole
from app.schemas.filing import FilingCreate, FilingUpdate
from app.services.clients import get_client
from app.services.notifications import notify
from app.services.users import get_active_ca

logger = logging.getLogger(__name__)


def ensure_filing_access(user: User, filing: Filing) -> None:
    ensure_can_access(user, "Filing", filing.client.user_id, filing.ca_id)


async def get_filing(db: AsyncSession, user: User, filing_id: str) -> Filing:
    result = await db.execute(select(Filing).where(Filing.id == filing_id))
    filing = result.scalar_one_or_none()
    if not filing:
        raise ResourceNotFoundError("Filing")
    ensure_filing_access(user, filing)
    return filing


async def _ensure_unique(
    db: AsyncSession,
    client_id: str,
    tax_year: str,
    filing_type: FilingType,
    exclude_id: str | None = None,
) -> None:
    query = select(Filing.id).where(
        Filing.client_id == client_id,
        Filing.tax_year == tax_year,
        Filing.filing_type == filing_type,
    )
    if exclude_id:
        query = query.where(Filing.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictError("Filing already exists for this tax year and type")


async def create_filing(db: AsyncSession, user: User, body: FilingCreate) -> Filing:
    client = await get_client(db, user, body.client_id)
    await _ensure_unique(db, client.id, body.tax_year, body.filing_type)

    filing = Filing(
        client=client,
        ca_id=client.ca_id,
        tax_year=body.tax_year,
        filing_type=body.filing_type,
        status=FilingStatus.DRAFT,
        priority=body.priority,
        due_date=body.due_date,
        notes=body.notes,
        data=body.data,
    )
    db.add(filing)
    await db.flush()

    logger.info("Created %s filing %s for client %s", body.tax_year, filing.id, client.id)
    return filing


async def list_filings(
    db: AsyncSession,
    user: User,
    *,
    status: FilingStatus | None = None,
    tax_year: str | None = None,
    filing_type: FilingType | None = None,
    client_id: str | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Filing], int]:
    filters = [scope_clause(user, Client.user_id, Filing.ca_id)]
    if status is not None:
        filters.append(Filing.status == status)
    if tax_year:
        filters.append(Filing.tax_year == tax_year)
    if filing_type is not None:
        filters.append(Filing.filing_type == filing_type)
    if client_id:
        filters.append(Filing.client_id == client_id)

    total = (
        await db.execute(
            select(func.count())
            .select_from(Filing)
            .join(Client, Filing.client_id == Client.id)
            .where(*filters)
        )
    ).scalar() or 0
    result = await db.execute(
        select(Filing)
        .join(Client, Filing.client_id == Client.id)
        .where(*filters)
        .order_by(Filing.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_filing(
    db: AsyncSession, user: User, filing_id: str, body: FilingUpdate
) -> Filing:
    filing = await get_filing(db, user, filing_id)
    updates = body.model_dump(exclude_unset=True)

    if "tax_year" in updates or "filing_type" in updates:
        await _ensure_unique(
            db,
            filing.client_id,
            updates.get("tax_year") or filing.tax_year,
            updates.get("filing_type") or filing.filing_type,
            exclude_id=filing.id,
        )
    for key, value in updates.items():
        setattr(filing, key, value)
    await db.flush()
    return filing


def apply_status(filing: Filing, new_status: FilingStatus, now: datetime | None = None) -> None:
    """Move `filing` to `new_status` or raise on a disallowed transition."""
    if not filing.can_transition_to(new_status):
        raise ValidationFailedError(
            f"Invalid status transition from {filing.status.value} to {new_status.value}"
        )
    now = now or datetime.utcnow()
    filing.status = new_status
    if new_status == FilingStatus.UNDER_REVIEW:
        filing.submitted_at = now
    elif new_status == FilingStatus.COMPLETED:
        filing.completed_at = now


async def update_status(
    db: AsyncSession,
    user: User,
    filing_id: str,
    new_status: FilingStatus,
    notes: str | None = None,
) -> Filing:
    filing = await get_filing(db, user, filing_id)
    old_status = filing.status
    apply_status(filing, new_status)
    if notes is not None:
        filing.notes = notes

    notify(
        db,
        filing.client.user_id,
        title="Filing status updated",
        body=(
            f"Your {filing.tax_year} filing moved from "
            f"{old_status.value} to {new_status.value}"
        ),
        type=NotificationType.ERROR if new_status == FilingStatus.REJECTED else NotificationType.INFO,
        category=NotificationCategory.FILING,
        action_url=f"/filings/{filing.id}",
    )
    await db.flush()

    logger.info("Filing %s %s -> %s", filing.id, old_status.value, new_status.value)
    return filing


async def assign_ca(db: AsyncSession, user: User, filing_id: str, ca_id: str) -> Filing:
    ensure_role(user, UserRole.ADMIN, message="Only admins can assign a CA")
    filing = await get_filing(db, user, filing_id)
    ca = await get_active_ca(db, ca_id)
    filing.ca_id = ca.id
    await db.flush()
    logger.info("Assigned CA %s to filing %s", ca.id, filing.id)
    return filing


async def unassign_ca(db: AsyncSession, user: User, filing_id: str) -> Filing:
    ensure_role(user, UserRole.ADMIN, message="Only admins can unassign a CA")
    filing = await get_filing(db, user, filing_id)
    if not filing.ca_id:
        raise ValidationFailedError("No CA assigned to this filing")
    filing.ca_id = None
    await db.flush()
    return filing


async def delete_filing(db: AsyncSession, user: User, filing_id: str) -> None:
    filing = await get_filing(db, user, filing_id)
    if filing.status != FilingStatus.DRAFT:
        raise ValidationFailedError("Only draft filings can be deleted")
    await db.delete(filing)
    await db.flush()
    logger.info("Deleted filing %s", filing_id)


# ── Stats ───────────────────────────────────────────────────

OPEN_STATUSES = (FilingStatus.DRAFT, FilingStatus.IN_PROGRESS, FilingStatus.UNDER_REVIEW)


async def filing_stats(
    db: AsyncSession,
    user: User,
    *,
    client_id: str | None = None,
    ca_id: str | None = None,
    tax_year: str | None = None,
) -> dict[FilingStatus, int]:
    """Filing counts per status within the caller's scope."""
    filters = [scope_clause(user, Client.user_id, Filing.ca_id)]
    if client_id:
        filters.append(Filing.client_id == client_id)
    if ca_id:
        filters.append(Filing.ca_id == ca_id)
    if tax_year:
        filters.append(Filing.tax_year == tax_year)

    result = await db.execute(
        select(Filing.status, func.count())
        .join(Client, Filing.client_id == Client.id)
        .where(*filters)
        .group_by(Filing.status)
    )
    counts = {s: 0 for s in FilingStatus}
    counts.update({row[0]: row[1] for row in result.all()})
    return counts


async def upcoming_deadlines(
    db: AsyncSession,
    user: User,
    days: int = 30,
    today: date | None = None,
) -> list[Filing]:
    """Open filings in scope due within the next `days` days, soonest first."""
    today = today or datetime.utcnow().date()
    result = await db.execute(
        select(Filing)
        .join(Client, Filing.client_id == Client.id)
        .where(
            scope_clause(user, Client.user_id, Filing.ca_id),
            Filing.status.in_(OPEN_STATUSES),
            Filing.due_date.is_not(None),
            Filing.due_date >= today,
            Filing.due_date <= today + timedelta(days=days),
        )
        .order_by(Filing.due_date, Filing.created_at)
    )
    return list(result.scalars().all())

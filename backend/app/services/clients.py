"""Client profiles: creation, scoped lookups and CA assignment.

Every lookup goes through the access policy. A client outside the
caller's scope is reported exactly like a missing one.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import ensure_can_access, ensure_role, scope_clause
from app.middleware.exceptions import ConflictError, ResourceNotFoundError, ValidationFailedError
from app.models.client import Client, ClientStatus
from app.models.user import User, UserRole
from app.schemas.client import ClientCreate, ClientUpdate
from app.services.users import get_active_ca, get_user

logger = logging.getLogger(__name__)


def ensure_client_access(user: User, client: Client) -> None:
    ensure_can_access(user, "Client", client.user_id, client.ca_id)


async def get_client(db: AsyncSession, user: User, client_id: str) -> Client:
    result = await db.execute(select(Client).where(Client.id == client_id))
    client = result.scalar_one_or_none()
    if not client:
        raise ResourceNotFoundError("Client")
    ensure_client_access(user, client)
    return client


async def get_client_for_user(db: AsyncSession, user_id: str) -> Client | None:
    result = await db.execute(select(Client).where(Client.user_id == user_id))
    return result.scalar_one_or_none()


async def _ensure_pan_free(db: AsyncSession, pan: str, exclude_id: str | None = None) -> None:
    query = select(Client.id).where(Client.pan_number == pan)
    if exclude_id:
        query = query.where(Client.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictError("Client with this PAN number already exists")


async def create_client(db: AsyncSession, user: User, body: ClientCreate) -> Client:
    """Create the client profile for a customer.

    Admins name the owning customer; customers always create their own.
    """
    if user.role == UserRole.ADMIN:
        if not body.user_id:
            raise ValidationFailedError(errors=["userId is required"])
        owner = await get_user(db, body.user_id)
    elif user.role == UserRole.CUSTOMER:
        if body.user_id and body.user_id != user.id:
            raise ValidationFailedError(
                "Customers can only create their own client profile"
            )
        owner = user
    else:
        ensure_role(user, UserRole.ADMIN, UserRole.CUSTOMER)

    if owner.role != UserRole.CUSTOMER:
        raise ValidationFailedError(errors=["Client owner must be a customer"])
    if await get_client_for_user(db, owner.id):
        raise ConflictError("Client profile already exists for this user")
    await _ensure_pan_free(db, body.pan_number)

    client = Client(
        user=owner,
        pan_number=body.pan_number,
        aadhar_number=body.aadhar_number,
        date_of_birth=body.date_of_birth,
        address=body.address,
        occupation=body.occupation,
        annual_income=body.annual_income,
        profile=body.profile,
        status=ClientStatus.ACTIVE,
        onboarding_completed=False,
        ca=None,
    )
    db.add(client)
    await db.flush()

    logger.info("Created client %s for user %s", client.id, owner.id)
    return client


async def list_clients(
    db: AsyncSession,
    user: User,
    *,
    status: ClientStatus | None = None,
    ca_id: str | None = None,
    search: str | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Client], int]:
    filters = [scope_clause(user, Client.user_id, Client.ca_id)]
    if status is not None:
        filters.append(Client.status == status)
    if ca_id:
        filters.append(Client.ca_id == ca_id)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(Client.pan_number.ilike(pattern), Client.occupation.ilike(pattern)))

    total = (
        await db.execute(select(func.count()).select_from(Client).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(Client)
        .where(*filters)
        .order_by(Client.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_client(
    db: AsyncSession, user: User, client_id: str, body: ClientUpdate
) -> Client:
    client = await get_client(db, user, client_id)
    updates = body.model_dump(exclude_unset=True)

    if user.role == UserRole.CUSTOMER:
        blocked = sorted({"status", "ca_id"} & updates.keys())
        if blocked:
            raise ValidationFailedError(
                "Customers cannot change these fields",
                errors=[f"{field} cannot be updated" for field in blocked],
            )
    if "ca_id" in updates:
        ensure_role(user, UserRole.ADMIN, message="Only admins can assign a CA")
        ca_id = updates.pop("ca_id")
        client.ca = await get_active_ca(db, ca_id) if ca_id else None
    if updates.get("pan_number") and updates["pan_number"] != client.pan_number:
        await _ensure_pan_free(db, updates["pan_number"], exclude_id=client.id)

    for key, value in updates.items():
        setattr(client, key, value)
    await db.flush()
    return client


async def delete_client(db: AsyncSession, user: User, client_id: str) -> None:
    ensure_role(user, UserRole.ADMIN, message="Only admins can delete clients")
    client = await get_client(db, user, client_id)
    await db.delete(client)
    await db.flush()
    logger.info("Deleted client %s", client_id)


async def assign_ca(db: AsyncSession, user: User, client_id: str, ca_id: str) -> Client:
    ensure_role(user, UserRole.ADMIN, message="Only admins can assign a CA")
    client = await get_client(db, user, client_id)
    client.ca = await get_active_ca(db, ca_id)
    await db.flush()
    logger.info("Assigned CA %s to client %s", ca_id, client.id)
    return client


async def unassign_ca(db: AsyncSession, user: User, client_id: str) -> Client:
    ensure_role(user, UserRole.ADMIN, message="Only admins can unassign a CA")
    client = await get_client(db, user, client_id)
    if not client.ca_id:
        raise ValidationFailedError("No CA assigned to this client")
    client.ca = None
    await db.flush()
    return client


async def complete_onboarding(db: AsyncSession, user: User, client_id: str) -> Client:
    client = await get_client(db, user, client_id)
    client.onboarding_completed = True
    await db.flush()
    logger.info("Client %s completed onboarding", client.id)
    return client


async def client_stats(db: AsyncSession) -> dict:
    """Platform-wide client counts for the admin console."""
    row = (
        await db.execute(
            select(
                func.count(Client.id),
                func.count(Client.id).filter(Client.status == ClientStatus.ACTIVE),
                func.count(Client.id).filter(Client.status == ClientStatus.INACTIVE),
                func.count(Client.id).filter(Client.status == ClientStatus.SUSPENDED),
                func.count(Client.id).filter(Client.ca_id.is_(None)),
                func.count(Client.id).filter(Client.onboarding_completed.is_(False)),
            )
        )
    ).one()
    total, active, inactive, suspended, unassigned, incomplete = row
    return {
        "total": total,
        "active": active,
        "inactive": inactive,
        "suspended": suspended,
        "unassigned": unassigned,
        "incomplete_onboarding": incomplete,
    }

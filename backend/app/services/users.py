"""User lookups shared by the resource services."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError, ValidationFailedError
from app.models.user import User, UserRole


async def get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError("User")
    return user


async def get_active_ca(db: AsyncSession, ca_id: str) -> User:
    """Load the CA a resource is being assigned to.

    Raises:
        ResourceNotFoundError: no such user
        ValidationFailedError: the user is not an active chartered accountant
    """
    ca = await get_user(db, ca_id)
    if ca.role != UserRole.CA:
        raise ValidationFailedError("Invalid CA", errors=["User is not a chartered accountant"])
    if not ca.is_active:
        raise ValidationFailedError("Invalid CA", errors=["CA account is inactive"])
    return ca

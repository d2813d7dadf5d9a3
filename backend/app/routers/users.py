"""Admin-only user management.

Endpoints:
    GET    /api/users/                      List users (role, isActive, search; paginated)
    POST   /api/users/                      Create a user with any role
    GET    /api/users/{user_id}             Get one user
    PATCH  /api/users/{user_id}             Update profile fields
    PUT    /api/users/{user_id}/role        Change role
    POST   /api/users/{user_id}/deactivate  Deactivate user
    POST   /api/users/{user_id}/activate    Reactivate user
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_admin
from app.auth.password import hash_password
from app.database import get_db
from app.middleware.exceptions import ConflictError, ValidationFailedError
from app.models.user import User, UserRole
from app.schemas.auth import UserOut
from app.schemas.common import ApiResponse, Page, PageParams, page_params
from app.schemas.user import RoleUpdate, UserCreate, UserUpdate
from app.services.users import get_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[UserOut]])
async def list_users(
    role: UserRole | None = Query(None),
    is_active: bool | None = Query(None, alias="isActive"),
    search: str | None = Query(None, max_length=100),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    filters = []
    if role is not None:
        filters.append(User.role == role)
    if is_active is not None:
        filters.append(User.is_active == is_active)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))

    total = (
        await db.execute(select(func.count()).select_from(User).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(User)
        .where(*filters)
        .order_by(User.created_at.desc())
        .offset(paging.offset)
        .limit(paging.limit)
    )
    items = [UserOut.model_validate(u) for u in result.scalars().all()]
    return ApiResponse(
        message="Users retrieved successfully",
        data=Page.build(items, total, paging.page, paging.limit),
    )


@router.post("/", response_model=ApiResponse[UserOut], status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise ConflictError("User with this email already exists")

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name.strip(),
        phone=body.phone,
        role=body.role,
        is_active=True,
        is_verified=body.is_verified,
    )
    db.add(user)
    await db.flush()

    logger.info("Admin %s created %s user %s", admin.id, body.role.value, user.id)
    return ApiResponse(message="User created successfully", data=UserOut.model_validate(user))


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
async def get_one(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    user = await get_user(db, user_id)
    return ApiResponse(message="User retrieved successfully", data=UserOut.model_validate(user))


@router.patch("/{user_id}", response_model=ApiResponse[UserOut])
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """Update name, phone, avatar or the verified flag."""
    user = await get_user(db, user_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    await db.flush()
    return ApiResponse(message="User updated successfully", data=UserOut.model_validate(user))


@router.put("/{user_id}/role", response_model=ApiResponse[UserOut])
async def change_role(
    user_id: str,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if user_id == admin.id:
        raise ValidationFailedError("Cannot change your own role")

    user = await get_user(db, user_id)
    old_role = user.role
    user.role = body.role
    await db.flush()

    logger.info("User %s role %s -> %s", user.id, old_role.value, body.role.value)
    return ApiResponse(message="User role updated successfully", data=UserOut.model_validate(user))


@router.post("/{user_id}/deactivate", response_model=ApiResponse[UserOut])
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Deactivate a user. Their tokens stop resolving immediately."""
    if user_id == admin.id:
        raise ValidationFailedError("Cannot deactivate yourself")

    user = await get_user(db, user_id)
    user.is_active = False
    await db.flush()

    logger.info("Admin %s deactivated user %s", admin.id, user.id)
    return ApiResponse(message="User deactivated successfully", data=UserOut.model_validate(user))


@router.post("/{user_id}/activate", response_model=ApiResponse[UserOut])
async def activate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = await get_user(db, user_id)
    user.is_active = True
    await db.flush()

    logger.info("Admin %s reactivated user %s", admin.id, user.id)
    return ApiResponse(message="User activated successfully", data=UserOut.model_validate(user))

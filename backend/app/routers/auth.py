"""Auth routes: register, login, refresh, me, change-password.

Route overview:
  POST /register         customer self-registration
  POST /login            email + password login
  POST /refresh          exchange a refresh token for new access + refresh tokens
  GET  /me               return the current user profile
  POST /change-password  replace the current user's password
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.auth.jwt import REFRESH, create_access_token, create_refresh_token, decode_token
from app.auth.password import hash_password, verify_password
from app.database import get_db
from app.middleware.exceptions import ConflictError, ValidationFailedError
from app.models.user import User, UserRole
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from app.schemas.common import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

def _build_token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value,
        ),
        refresh_token=create_refresh_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value,
        ),
        user=UserOut.model_validate(user),
    )


# ── POST /register ──────────────────────────────────────────

@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Self-registration. New accounts are always customers."""
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise ConflictError("User with this email already exists")

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
        phone=body.phone,
        role=UserRole.CUSTOMER,
        is_active=True,
        is_verified=False,
        last_login_at=datetime.utcnow(),
    )
    db.add(user)
    await db.flush()

    logger.info("Registered user %s", user.id)
    return ApiResponse(message="User registered successfully", data=_build_token_response(user))


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Email + password login. Unknown, wrong and deactivated all answer 401."""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login_at = datetime.utcnow()
    await db.flush()
    return ApiResponse(message="Login successful", data=_build_token_response(user))


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access + refresh token pair."""
    user_id = decode_token(body.refresh_token, REFRESH)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return ApiResponse(message="Token refreshed successfully", data=_build_token_response(user))


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=ApiResponse[UserOut])
async def me(user: User = Depends(get_current_user)):
    """Return the current authenticated user's profile."""
    return ApiResponse(message="Profile retrieved successfully", data=UserOut.model_validate(user))


# ── POST /change-password ────────────────────────────────────

@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Replace the caller's password after checking the current one."""
    if not verify_password(body.current_password, user.hashed_password):
        raise ValidationFailedError("Current password is incorrect")

    user.hashed_password = hash_password(body.new_password)
    await db.flush()
    logger.info("Password changed for user %s", user.id)
    return ApiResponse(message="Password changed successfully")

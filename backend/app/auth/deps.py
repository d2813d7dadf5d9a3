"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user   → decode JWT, load user from DB, return User
  require_role(...)  → restrict to specific roles
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import decode_token
from app.database import get_db
from app.middleware.exceptions import AccessDeniedError
from app.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the access token and load the active user it names.

    The user id is stashed on `request.state` so error logs can name the
    actor.
    """
    user_id = decode_token(token)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = user.id
    return user


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.get("/admin-only")
        async def admin_view(user: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AccessDeniedError(
                f"Requires role: {', '.join(r.value for r in roles)}"
            )
        return user

    return _check


require_admin = require_role(UserRole.ADMIN)

"""Signed bearer tokens for TaxDesk users.

Both token kinds carry the same identity claims and differ only in `type`
and lifetime:
  - sub:    user ID
  - email:  user email
  - role:   admin | ca | customer
  - type:   "access" | "refresh"
  - exp:    expiry timestamp

`decode_token` checks the type, so an access token never passes as a
refresh token and vice versa.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import settings

ALGORITHM = settings.jwt_algorithm
ACCESS = "access"
REFRESH = "refresh"


def _issue(user_id: str, email: str, role: str, token_type: str, lifetime: timedelta) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _issue(user_id, email, role, ACCESS, lifetime)


def create_refresh_token(user_id: str, email: str, role: str) -> str:
    lifetime = timedelta(days=settings.refresh_token_expire_days)
    return _issue(user_id, email, role, REFRESH, lifetime)


def decode_token(token: str, token_type: str = ACCESS) -> str | None:
    """Return the user id of a valid token of `token_type`, else None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != token_type:
        return None
    return claims.get("sub")

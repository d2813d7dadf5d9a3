from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from app.models.user import UserRole
from app.schemas.common import CamelModel
from app.schemas.validators import validate_password, validate_phone


class UserOut(CamelModel):
    id: str
    email: str
    full_name: str
    phone: str | None
    role: UserRole
    is_active: bool
    is_verified: bool
    profile_image_url: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime


# ── Self-registration (customers) ───────────────────────────

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return validate_phone(v)


# ── Login ────────────────────────────────────────────────────

class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


# ── Token refresh ────────────────────────────────────────────

class RefreshRequest(CamelModel):
    refresh_token: str


# ── Password change ──────────────────────────────────────────

class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)

from pydantic import EmailStr, Field, field_validator

from app.models.user import UserRole
from app.schemas.common import CamelModel
from app.schemas.validators import validate_password, validate_phone


class UserCreate(CamelModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = None
    role: UserRole = UserRole.CUSTOMER
    is_verified: bool = False

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return validate_phone(v)


class UserUpdate(CamelModel):
    full_name: str | None = Field(None, min_length=2, max_length=100)
    phone: str | None = None
    profile_image_url: str | None = Field(None, max_length=500)
    is_verified: bool | None = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return validate_phone(v)


class RoleUpdate(CamelModel):
    role: UserRole

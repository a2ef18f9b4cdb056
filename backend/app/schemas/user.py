"""Pydantic schemas for team (user) management."""

from pydantic import BaseModel, EmailStr, field_validator

from app.schemas.validators import one_of, validate_password, validate_phone

USER_STATUSES = ("active", "inactive", "suspended")


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    phone: str | None = None
    role_id: str
    user_type: str = "admin"
    client_id: str | None = None
    job_title: str | None = None
    permission_override: list[str] = []
    blocked_permissions: list[str] = []

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("user_type")
    @classmethod
    def valid_user_type(cls, v: str) -> str:
        return one_of(v, ("admin", "client"), "user_type")


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role_id: str | None = None
    client_id: str | None = None
    status: str | None = None
    job_title: str | None = None
    location: str | None = None
    bio: str | None = None
    permission_override: list[str] | None = None
    blocked_permissions: list[str] | None = None

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, USER_STATUSES, "status")


class SetPasswordRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password(v)

from datetime import datetime

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from app.schemas.validators import one_of, validate_password, validate_phone


class UserOut(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: str | None = None
    bio: str | None = None
    location: str | None = None
    job_title: str | None = None
    role: str
    role_id: str
    role_display_name: str | None = None
    user_type: str
    status: str
    client_id: str | None = None
    permissions: list[str]
    permission_override: list[str] = []
    blocked_permissions: list[str] = []
    email_verified: bool = False
    phone_verified: bool = False
    last_login: datetime | None = None
    created_at: datetime | None = None


# ── Registration ─────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    phone: str | None = None
    role_id: str
    user_type: str = "client"
    client_id: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

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


# ── Login / tokens ───────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class RefreshRequest(BaseModel):
    refresh_token: str


# ── Passwords ────────────────────────────────────────────────

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str
    confirm_password: str | None = None

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


# ── Mobile verification ──────────────────────────────────────

class OTPVerify(BaseModel):
    code: str

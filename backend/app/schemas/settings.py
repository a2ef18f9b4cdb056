"""Pydantic schemas for settings, company info, preferences and profile."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, field_validator

from app.schemas.auth import UserOut
from app.schemas.client import ClientOut
from app.schemas.validators import one_of, validate_password, validate_phone, validate_url

SETTING_TYPES = ("string", "number", "boolean", "object", "array")
SETTING_CATEGORIES = ("general", "email", "notification", "billing", "security")


class SettingUpsert(BaseModel):
    value: Any
    type: str | None = None
    category: str = "general"
    description: str | None = None
    is_public: bool = False

    @field_validator("type")
    @classmethod
    def valid_type(cls, v: str | None) -> str | None:
        return one_of(v, SETTING_TYPES, "type")

    @field_validator("category")
    @classmethod
    def valid_category(cls, v: str) -> str:
        return one_of(v, SETTING_CATEGORIES, "category")


class SettingOut(BaseModel):
    key: str
    value: Any
    type: str
    category: str
    description: str | None
    is_public: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Company info / system preferences ────────────────────────

class CompanyInfo(BaseModel):
    company_name: str = ""
    company_email: str = ""
    company_phone: str = ""
    company_address: str = ""
    website: str = ""
    tax_id: str = ""


class CompanyInfoUpdate(BaseModel):
    company_name: str | None = None
    company_email: EmailStr | None = None
    company_phone: str | None = None
    company_address: str | None = None
    website: str | None = None
    tax_id: str | None = None

    @field_validator("company_phone")
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("website")
    @classmethod
    def website_format(cls, v: str | None) -> str | None:
        return validate_url(v)


class SystemPreferences(BaseModel):
    language: str = "English"
    timezone: str = "UTC"
    date_format: str = "DD/MM/YYYY"
    currency: str = "USD"


class SystemPreferencesUpdate(BaseModel):
    language: str | None = None
    timezone: str | None = None
    date_format: str | None = None
    currency: str | None = None

    @field_validator("date_format")
    @classmethod
    def valid_format(cls, v: str | None) -> str | None:
        return one_of(v, ("DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"), "date_format")


# ── Per-user ─────────────────────────────────────────────────

class NotificationPreferences(BaseModel):
    email_notifications: bool = True
    push_notifications: bool = True
    sms_notifications: bool = False
    shipment_updates: bool = True
    invoice_alerts: bool = True
    system_updates: bool = True
    newsletter: bool = False


class NotificationPreferencesUpdate(BaseModel):
    email_notifications: bool | None = None
    push_notifications: bool | None = None
    sms_notifications: bool | None = None
    shipment_updates: bool | None = None
    invoice_alerts: bool | None = None
    system_updates: bool | None = None
    newsletter: bool | None = None


class ProfileUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    bio: str | None = None
    location: str | None = None
    job_title: str | None = None

    # Client users may also edit their company's public details
    company_name: str | None = None
    trading_name: str | None = None
    industry: str | None = None
    website: str | None = None

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("website")
    @classmethod
    def website_format(cls, v: str | None) -> str | None:
        return validate_url(v)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password(v)


class ProfileOut(UserOut):
    """The caller's account, plus their company record for client users."""
    notification_preferences: NotificationPreferences
    client: ClientOut | None = None

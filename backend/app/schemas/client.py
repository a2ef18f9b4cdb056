"""Pydantic schemas for Client CRUD operations."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.validators import one_of, validate_phone, validate_url

CLIENT_STATUSES = ("active", "inactive", "suspended")
CLIENT_SOURCES = ("portal", "direct", "referral")
PAYMENT_TERMS_DAYS = (15, 30, 45, 60, 90)


class BillingAddress(BaseModel):
    same_as_address: bool = True
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class _ClientFields(BaseModel):
    """Validators shared by create and update payloads."""

    @field_validator("contact_phone", "contact_alternate_phone", check_fields=False)
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @field_validator("website", check_fields=False)
    @classmethod
    def website_format(cls, v: str | None) -> str | None:
        return validate_url(v)

    @field_validator("status", check_fields=False)
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, CLIENT_STATUSES, "status")

    @field_validator("source", check_fields=False)
    @classmethod
    def valid_source(cls, v: str | None) -> str | None:
        return one_of(v, CLIENT_SOURCES, "source")

    @field_validator("payment_terms", check_fields=False)
    @classmethod
    def valid_terms(cls, v: int | None) -> int | None:
        return one_of(v, PAYMENT_TERMS_DAYS, "payment_terms")


class ClientCreate(_ClientFields):
    company_name: str = Field(..., min_length=1, max_length=255)
    trading_name: str | None = None
    industry: str | None = None
    website: str | None = None

    contact_first_name: str = Field(..., min_length=1)
    contact_last_name: str = Field(..., min_length=1)
    contact_position: str | None = None
    contact_email: EmailStr
    contact_phone: str
    contact_alternate_phone: str | None = None

    address_street: str | None = None
    address_city: str = Field(..., min_length=1)
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str = Field(..., min_length=1)
    billing_address: BillingAddress | None = None

    source: str = "direct"
    status: str = "active"
    credit_limit: float = Field(0, ge=0)
    current_balance: float = 0
    payment_terms: int = 30
    preferred_currency: str = "USD"
    tax_id: str | None = None
    registration_number: str | None = None
    notes: str | None = None
    tags: list[str] = []


class ClientUpdate(_ClientFields):
    company_name: str | None = Field(None, min_length=1, max_length=255)
    trading_name: str | None = None
    industry: str | None = None
    website: str | None = None

    contact_first_name: str | None = None
    contact_last_name: str | None = None
    contact_position: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None
    contact_alternate_phone: str | None = None

    address_street: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None
    billing_address: BillingAddress | None = None

    source: str | None = None
    status: str | None = None
    credit_limit: float | None = Field(None, ge=0)
    current_balance: float | None = None
    payment_terms: int | None = None
    preferred_currency: str | None = None
    tax_id: str | None = None
    registration_number: str | None = None
    notes: str | None = None
    tags: list[str] | None = None


class ClientOut(BaseModel):
    id: str
    client_code: str
    company_name: str
    trading_name: str | None
    industry: str | None
    website: str | None
    contact_first_name: str
    contact_last_name: str
    contact_name: str
    contact_position: str | None
    contact_email: str
    contact_phone: str
    contact_alternate_phone: str | None
    address_street: str | None
    address_city: str
    address_state: str | None
    address_postal_code: str | None
    address_country: str
    billing_address: dict | None
    source: str
    status: str
    credit_limit: float
    current_balance: float
    payment_terms: int
    preferred_currency: str
    tax_id: str | None
    registration_number: str | None
    notes: str | None
    tags: list[str] | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientPickerItem(BaseModel):
    id: str
    client_code: str
    company_name: str

    model_config = {"from_attributes": True}


class ClientStats(BaseModel):
    shipments: dict
    invoices: dict
    balance: dict

"""Pydantic schemas for Supplier CRUD operations."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.validators import one_of, validate_phone

SERVICE_TYPES = (
    "ocean_freight", "air_sea", "container", "port_ops",
    "warehouse", "customs", "ground", "express",
)
SUPPLIER_STATUSES = ("active", "inactive", "pending")
SUPPLIER_PAYMENT_TERMS = (
    "net_15", "net_30", "net_45", "net_60", "net_90", "immediate", "custom",
)


class Contract(BaseModel):
    contract_number: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    value: float | None = None
    status: str | None = None
    description: str | None = None


class _SupplierFields(BaseModel):

    @field_validator("service_types", check_fields=False)
    @classmethod
    def valid_services(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("At least one service type is required")
        for s in v:
            one_of(s, SERVICE_TYPES, "service_types")
        return v

    @field_validator("status", check_fields=False)
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, SUPPLIER_STATUSES, "status")

    @field_validator("payment_terms", check_fields=False)
    @classmethod
    def valid_terms(cls, v: str | None) -> str | None:
        return one_of(v, SUPPLIER_PAYMENT_TERMS, "payment_terms")

    @field_validator("contact_phone", check_fields=False)
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)


class SupplierCreate(_SupplierFields):
    name: str = Field(..., min_length=1, max_length=255)
    trading_name: str | None = None
    service_types: list[str]

    contact_first_name: str = Field(..., min_length=1)
    contact_last_name: str = Field(..., min_length=1)
    contact_position: str | None = None
    contact_email: EmailStr
    contact_phone: str

    address_street: str | None = None
    address_city: str = Field(..., min_length=1)
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str = Field(..., min_length=1)

    banking: dict | None = None
    contracts: list[Contract] = []
    status: str = "pending"
    rating: float | None = Field(None, ge=0, le=5)
    payment_terms: str = "net_30"
    tags: list[str] = []
    notes: str | None = None


class SupplierUpdate(_SupplierFields):
    name: str | None = Field(None, min_length=1, max_length=255)
    trading_name: str | None = None
    service_types: list[str] | None = None

    contact_first_name: str | None = None
    contact_last_name: str | None = None
    contact_position: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None

    address_street: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None

    banking: dict | None = None
    contracts: list[Contract] | None = None
    status: str | None = None
    rating: float | None = Field(None, ge=0, le=5)
    payment_terms: str | None = None
    tags: list[str] | None = None
    notes: str | None = None
    total_shipments: int | None = Field(None, ge=0)
    active_contracts: int | None = Field(None, ge=0)
    on_time_rate: float | None = Field(None, ge=0, le=100)


class SupplierOut(BaseModel):
    id: str
    supplier_code: str
    name: str
    trading_name: str | None
    service_types: list[str]
    contact_first_name: str
    contact_last_name: str
    contact_position: str | None
    contact_email: str
    contact_phone: str
    address_street: str | None
    address_city: str
    address_state: str | None
    address_postal_code: str | None
    address_country: str
    banking: dict | None
    contracts: list[dict] | None
    status: str
    rating: float | None
    payment_terms: str
    total_shipments: int
    active_contracts: int
    on_time_rate: float | None
    tags: list[str] | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

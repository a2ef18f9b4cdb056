"""Pydantic schemas for expenses, income and their lookup lists."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import one_of

PAYMENT_METHODS = (
    "Bank Transfer", "Credit Card", "Cash", "Check", "Wire Transfer", "Other",
)
EXPENSE_STATUSES = ("pending", "paid", "overdue")
INCOME_STATUSES = ("pending", "received", "partially_paid")


class _PaymentMethodField(BaseModel):

    @field_validator("payment_method", check_fields=False)
    @classmethod
    def valid_method(cls, v: str | None) -> str | None:
        return one_of(v, PAYMENT_METHODS, "payment_method")


# ── Expenses ─────────────────────────────────────────────────

class ExpenseCreate(_PaymentMethodField):
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    currency: str = "USD"
    date: dt.date | None = None
    shipment_id: str | None = None
    container_id: str | None = None
    supplier_id: str | None = None
    payment_method: str = "Bank Transfer"
    invoice_number: str | None = None
    status: str = "pending"
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return one_of(v, EXPENSE_STATUSES, "status")


class ExpenseUpdate(_PaymentMethodField):
    category: str | None = None
    description: str | None = None
    amount: float | None = Field(None, ge=0)
    currency: str | None = None
    date: dt.date | None = None
    shipment_id: str | None = None
    container_id: str | None = None
    supplier_id: str | None = None
    payment_method: str | None = None
    invoice_number: str | None = None
    status: str | None = None
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, EXPENSE_STATUSES, "status")


class ExpenseOut(BaseModel):
    id: str
    category: str
    description: str
    amount: float
    currency: str
    date: dt.date
    shipment_id: str | None
    container_id: str | None
    supplier_id: str | None
    payment_method: str
    invoice_number: str | None
    status: str
    notes: str | None
    created_by: str | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


# ── Income ───────────────────────────────────────────────────

class IncomeCreate(_PaymentMethodField):
    source: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    currency: str = "USD"
    date: dt.date | None = None
    shipment_id: str | None = None
    client_id: str | None = None
    invoice_id: str | None = None
    payment_method: str = "Bank Transfer"
    status: str = "pending"
    amount_received: float = Field(0, ge=0)
    due_date: dt.date | None = None
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return one_of(v, INCOME_STATUSES, "status")


class IncomeUpdate(_PaymentMethodField):
    source: str | None = None
    description: str | None = None
    amount: float | None = Field(None, ge=0)
    currency: str | None = None
    date: dt.date | None = None
    shipment_id: str | None = None
    client_id: str | None = None
    invoice_id: str | None = None
    payment_method: str | None = None
    status: str | None = None
    amount_received: float | None = Field(None, ge=0)
    due_date: dt.date | None = None
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, INCOME_STATUSES, "status")


class IncomePayment(BaseModel):
    amount: float


class IncomeOut(BaseModel):
    id: str
    source: str
    description: str
    amount: float
    currency: str
    date: dt.date
    shipment_id: str | None
    client_id: str | None
    invoice_id: str | None
    payment_method: str
    status: str
    amount_received: float
    balance_due: float
    is_overdue: bool
    due_date: dt.date | None
    notes: str | None
    created_by: str | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


# ── Categories / sources ─────────────────────────────────────

class LookupCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)


class LookupOut(BaseModel):
    id: str
    value: str
    label: str
    is_system: bool

    model_config = {"from_attributes": True}


# ── Stats ────────────────────────────────────────────────────

class MonthTotal(BaseModel):
    month: str
    total: float


class ExpenseStats(BaseModel):
    total_amount: float
    count: int
    by_category: list[dict]
    by_status: dict[str, int]
    by_month: list[MonthTotal]


class IncomeStats(BaseModel):
    total_amount: float
    total_received: float
    outstanding: float
    count: int
    by_source: list[dict]
    by_status: dict[str, int]
    by_month: list[MonthTotal]

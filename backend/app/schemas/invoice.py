"""Pydantic schemas for invoices and the shipment invoice preview."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.validators import one_of

INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class InvoiceItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: float = Field(1, gt=0)
    unit_price: float = Field(..., ge=0)
    amount: float | None = Field(None, ge=0)

    @model_validator(mode="after")
    def fill_amount(self):
        if self.amount is None:
            self.amount = round(self.quantity * self.unit_price, 2)
        return self


class InvoiceCreate(BaseModel):
    client_id: str
    shipment_id: str | None = None
    issue_date: date | None = None
    due_date: date
    status: str = "draft"
    items: list[InvoiceItem] = Field(..., min_length=1)
    tax: float = Field(0, ge=0)
    currency: str = "USD"
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        # paid / cancelled are reached through their own endpoints
        return one_of(v, ("draft", "sent"), "status")

    @model_validator(mode="after")
    def due_after_issue(self):
        if self.issue_date and self.due_date < self.issue_date:
            raise ValueError("Due date cannot be before issue date")
        return self


class InvoiceUpdate(BaseModel):
    due_date: date | None = None
    status: str | None = None
    items: list[InvoiceItem] | None = Field(None, min_length=1)
    tax: float | None = Field(None, ge=0)
    currency: str | None = None
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, ("draft", "sent", "overdue"), "status")


class InvoicePayRequest(BaseModel):
    payment_method: str | None = None
    paid_date: date | None = None


class InvoiceOut(BaseModel):
    id: str
    invoice_code: str
    invoice_number: str
    client_id: str
    client_name: str | None = None
    shipment_id: str | None
    issue_date: date
    due_date: date
    status: str
    items: list[dict]
    subtotal: float
    tax: float
    total: float
    currency: str
    payment_method: str | None
    paid_date: date | None
    notes: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvoiceStats(BaseModel):
    count: dict[str, int]
    amount: dict[str, float]


# ── Shipment invoice preview ─────────────────────────────────

class PreviewLineItem(BaseModel):
    description: str
    quantity: int | float
    net_weight: float
    gross_weight: float
    dimensions: str
    freight: float
    customs: float
    total: float


class InvoicePreview(BaseModel):
    invoice_number: str
    date: str
    billed_to: dict
    shipment_details: dict
    line_items: list[PreviewLineItem]
    summary: dict[str, float]
    notes: str

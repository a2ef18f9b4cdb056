from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import one_of

TICKET_CATEGORIES = ("general", "shipment", "billing", "technical", "complaint")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")
TICKET_STATUSES = ("open", "in_progress", "waiting_customer", "resolved", "closed")


class TicketCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = "general"
    priority: str = "medium"
    related_shipment_id: str | None = None

    @field_validator("category")
    @classmethod
    def valid_category(cls, v: str) -> str:
        return one_of(v, TICKET_CATEGORIES, "category")

    @field_validator("priority")
    @classmethod
    def valid_priority(cls, v: str) -> str:
        return one_of(v, TICKET_PRIORITIES, "priority")


class TicketUpdate(BaseModel):
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    assigned_to: str | None = None
    resolution: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, TICKET_STATUSES, "status")

    @field_validator("priority")
    @classmethod
    def valid_priority(cls, v: str | None) -> str | None:
        return one_of(v, TICKET_PRIORITIES, "priority")

    @field_validator("category")
    @classmethod
    def valid_category(cls, v: str | None) -> str | None:
        return one_of(v, TICKET_CATEGORIES, "category")


class TicketMessageCreate(BaseModel):
    message: str = Field(..., min_length=1)
    is_internal: bool = False


class TicketMessage(BaseModel):
    sender_id: str
    sender_name: str
    message: str
    is_internal: bool = False
    created_at: datetime


class TicketOut(BaseModel):
    id: str
    ticket_number: str
    client_id: str | None
    created_by: str
    subject: str
    description: str
    category: str
    priority: str
    status: str
    assigned_to: str | None
    related_shipment_id: str | None
    messages: list[TicketMessage]
    resolved_at: datetime | None
    resolved_by: str | None
    resolution: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketStats(BaseModel):
    total: int
    open: int
    in_progress: int
    resolved: int

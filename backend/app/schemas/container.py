"""Pydantic schemas for Container CRUD operations."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import one_of

CONTAINER_TYPES = (
    "20ft_standard", "40ft_standard", "40ft_high_cube",
    "20ft_high_cube", "40ft_refrigerated", "20ft_refrigerated",
)
CONTAINER_STATUSES = ("available", "in_use", "maintenance", "damaged")
CONTAINER_CONDITIONS = ("excellent", "good", "fair", "poor")


class _ContainerFields(BaseModel):

    @field_validator("type", check_fields=False)
    @classmethod
    def valid_type(cls, v: str | None) -> str | None:
        return one_of(v, CONTAINER_TYPES, "type")

    @field_validator("status", check_fields=False)
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, CONTAINER_STATUSES, "status")

    @field_validator("condition", check_fields=False)
    @classmethod
    def valid_condition(cls, v: str | None) -> str | None:
        return one_of(v, CONTAINER_CONDITIONS, "condition")


class ContainerCreate(_ContainerFields):
    container_number: str = Field(..., min_length=1, max_length=20)
    type: str
    status: str = "available"
    location: str | None = None
    condition: str = "good"
    last_inspection_date: date | None = None
    purchase_date: date | None = None
    purchase_price: float | None = Field(None, ge=0)
    notes: str | None = None

    @field_validator("container_number")
    @classmethod
    def upper_number(cls, v: str) -> str:
        return v.strip().upper()


class ContainerUpdate(_ContainerFields):
    container_number: str | None = Field(None, min_length=1, max_length=20)
    type: str | None = None
    status: str | None = None
    location: str | None = None
    condition: str | None = None
    last_inspection_date: date | None = None
    purchase_date: date | None = None
    purchase_price: float | None = Field(None, ge=0)
    notes: str | None = None

    @field_validator("container_number")
    @classmethod
    def upper_number(cls, v: str | None) -> str | None:
        return v.strip().upper() if v else v


class ContainerOut(BaseModel):
    id: str
    container_code: str
    container_number: str
    type: str
    status: str
    location: str | None
    current_shipment_id: str | None
    condition: str
    last_inspection_date: date | None
    purchase_date: date | None
    purchase_price: float | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContainerPickerItem(BaseModel):
    id: str
    container_code: str
    container_number: str
    type: str

    model_config = {"from_attributes": True}


class ContainerStats(BaseModel):
    total: int
    available: int
    in_use: int
    maintenance: int
    damaged: int
    type_breakdown: dict[str, int]
    condition_breakdown: dict[str, int]

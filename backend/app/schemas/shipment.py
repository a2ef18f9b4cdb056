"""Pydantic schemas for Shipment CRUD and stats."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.container import CONTAINER_TYPES
from app.schemas.validators import one_of

SHIPMENT_STATUSES = (
    "pending", "confirmed", "in_transit", "customs",
    "out_for_delivery", "delivered", "cancelled", "on_hold",
)


class _ShipmentFields(BaseModel):

    @field_validator("status", check_fields=False)
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, SHIPMENT_STATUSES, "status")

    @field_validator("cargo_container_type", check_fields=False)
    @classmethod
    def valid_container_type(cls, v: str | None) -> str | None:
        return one_of(v, CONTAINER_TYPES, "cargo_container_type")

    @model_validator(mode="after")
    def arrival_after_departure(self):
        departure = getattr(self, "departure_date", None)
        eta = getattr(self, "estimated_arrival", None)
        if departure and eta and eta < departure:
            raise ValueError("Estimated arrival cannot be before departure date")
        return self


class ShipmentCreate(_ShipmentFields):
    client_id: str
    supplier_id: str | None = None
    container_id: str | None = None

    origin_port: str = Field(..., min_length=1)
    origin_city: str | None = None
    origin_country: str = Field(..., min_length=1)
    destination_port: str = Field(..., min_length=1)
    destination_city: str | None = None
    destination_country: str = Field(..., min_length=1)

    status: str = "pending"
    cargo_description: str = Field(..., min_length=1)
    cargo_weight: float | None = Field(None, ge=0)
    cargo_volume: float | None = Field(None, ge=0)
    cargo_quantity: int | None = Field(None, ge=0)
    cargo_container_type: str | None = None

    booking_date: date | None = None
    departure_date: date | None = None
    estimated_arrival: date | None = None
    actual_arrival: date | None = None

    total_cost: float = Field(0, ge=0)
    currency: str = "USD"
    notes: str | None = None


class ShipmentUpdate(_ShipmentFields):
    supplier_id: str | None = None
    container_id: str | None = None

    origin_port: str | None = None
    origin_city: str | None = None
    origin_country: str | None = None
    destination_port: str | None = None
    destination_city: str | None = None
    destination_country: str | None = None

    status: str | None = None
    cargo_description: str | None = None
    cargo_weight: float | None = Field(None, ge=0)
    cargo_volume: float | None = Field(None, ge=0)
    cargo_quantity: int | None = Field(None, ge=0)
    cargo_container_type: str | None = None

    booking_date: date | None = None
    departure_date: date | None = None
    estimated_arrival: date | None = None
    actual_arrival: date | None = None

    total_cost: float | None = Field(None, ge=0)
    currency: str | None = None
    notes: str | None = None


class ShipmentOut(BaseModel):
    id: str
    shipment_code: str
    tracking_number: str
    client_id: str
    client_name: str | None = None
    supplier_id: str | None
    supplier_name: str | None = None
    container_id: str | None
    origin_port: str
    origin_city: str | None
    origin_country: str
    destination_port: str
    destination_city: str | None
    destination_country: str
    status: str
    cargo_description: str
    cargo_weight: float | None
    cargo_volume: float | None
    cargo_quantity: int | None
    cargo_container_type: str | None
    booking_date: date | None
    departure_date: date | None
    estimated_arrival: date | None
    actual_arrival: date | None
    total_cost: float
    currency: str
    notes: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ShipmentStats(BaseModel):
    total: int
    active: int
    delivered: int
    delayed: int
    by_status: dict[str, int]

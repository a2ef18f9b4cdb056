"""Pydantic schemas for tracking updates and the public tracking page."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.models.tracking_update import TRACKING_STATUSES
from app.schemas.validators import one_of


class TrackingUpdateCreate(BaseModel):
    shipment_id: str
    status: str
    location_name: str | None = None
    location_city: str | None = None
    location_country: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    description: str = Field(..., min_length=1)
    timestamp: datetime | None = None
    is_public: bool = True
    temperature: float | None = None
    humidity: float | None = Field(None, ge=0, le=100)
    customs_status: str | None = None
    delay_reason: str | None = None
    notify_client: bool = False

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return one_of(v, TRACKING_STATUSES, "status")


class TrackingUpdateEdit(BaseModel):
    status: str | None = None
    location_name: str | None = None
    location_city: str | None = None
    location_country: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    description: str | None = Field(None, min_length=1)
    timestamp: datetime | None = None
    is_public: bool | None = None
    temperature: float | None = None
    humidity: float | None = Field(None, ge=0, le=100)
    customs_status: str | None = None
    delay_reason: str | None = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, TRACKING_STATUSES, "status")


class TrackingUpdateOut(BaseModel):
    id: str
    shipment_id: str
    status: str
    location_name: str | None
    location_city: str | None
    location_country: str | None
    latitude: float | None
    longitude: float | None
    description: str
    timestamp: datetime
    is_public: bool
    temperature: float | None
    humidity: float | None
    customs_status: str | None
    delay_reason: str | None
    created_by: str | None
    created_by_name: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TrackingFeedItem(TrackingUpdateOut):
    """An update joined with its shipment's identifying fields."""
    shipment_code: str | None = None
    tracking_number: str | None = None


class ActiveShipmentItem(BaseModel):
    id: str
    shipment_code: str
    tracking_number: str
    client_id: str
    client_name: str | None
    origin_port: str
    destination_port: str
    status: str
    estimated_arrival: date | None
    last_update: TrackingUpdateOut | None = None


class PublicShipmentSummary(BaseModel):
    tracking_number: str
    status: str
    origin_port: str
    origin_country: str
    destination_port: str
    destination_country: str
    departure_date: date | None
    estimated_arrival: date | None
    actual_arrival: date | None
    cargo_description: str

    model_config = {"from_attributes": True}


class PublicTrackingResponse(BaseModel):
    shipment: PublicShipmentSummary
    updates: list[TrackingUpdateOut]

"""TrackingUpdate — a timestamped milestone on a shipment's journey.

Public updates (is_public=True) are visible on the unauthenticated
tracking page; internal ones only in the back-office.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# Tracking milestone → resulting shipment status
SHIPMENT_STATUS_FOR = {
    "order_confirmed": "confirmed",
    "picked_up": "in_transit",
    "in_transit": "in_transit",
    "at_origin_port": "in_transit",
    "departed_origin": "in_transit",
    "at_sea": "in_transit",
    "delayed": "in_transit",
    "arrived_destination_port": "customs",
    "customs_clearance": "customs",
    "out_for_delivery": "out_for_delivery",
    "delivered": "delivered",
    "exception": "on_hold",
}

TRACKING_STATUSES = tuple(SHIPMENT_STATUS_FOR)


class TrackingUpdate(Base):
    __tablename__ = "tracking_updates"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    shipment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(40), nullable=False)

    # ── Location ─────────────────────────────────────────────
    location_name: Mapped[str | None] = mapped_column(String(255))
    location_city: Mapped[str | None] = mapped_column(String(100))
    location_country: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    description: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)

    # ── Metadata ─────────────────────────────────────────────
    temperature: Mapped[float | None] = mapped_column(Float)
    humidity: Mapped[float | None] = mapped_column(Float)
    customs_status: Mapped[str | None] = mapped_column(String(100))
    delay_reason: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_by_name: Mapped[str | None] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

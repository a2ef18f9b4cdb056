"""Shipment — one consignment moved for a client.

Status flow:
  pending → confirmed → in_transit → customs → out_for_delivery → delivered
  any non-final → on_hold | cancelled

Tracking updates drive the status (see app.routers.tracking), so most
transitions happen as a side effect of POST /api/tracking/.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

FINAL_STATUSES = ("delivered", "cancelled")


class Shipment(Base):
    __tablename__ = "shipments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    shipment_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    tracking_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )

    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id"), nullable=False, index=True
    )
    supplier_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("suppliers.id"), index=True
    )
    container_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("containers.id"), index=True
    )

    # ── Route ────────────────────────────────────────────────
    origin_port: Mapped[str] = mapped_column(String(100), nullable=False)
    origin_city: Mapped[str | None] = mapped_column(String(100))
    origin_country: Mapped[str] = mapped_column(String(100), nullable=False)
    destination_port: Mapped[str] = mapped_column(String(100), nullable=False)
    destination_city: Mapped[str | None] = mapped_column(String(100))
    destination_country: Mapped[str] = mapped_column(String(100), nullable=False)

    # pending | confirmed | in_transit | customs | out_for_delivery |
    # delivered | cancelled | on_hold
    status: Mapped[str] = mapped_column(String(30), default="pending", index=True)

    # ── Cargo ────────────────────────────────────────────────
    cargo_description: Mapped[str] = mapped_column(Text, nullable=False)
    cargo_weight: Mapped[float | None] = mapped_column(Float)  # kg
    cargo_volume: Mapped[float | None] = mapped_column(Float)  # m³
    cargo_quantity: Mapped[int | None] = mapped_column(Integer)
    cargo_container_type: Mapped[str | None] = mapped_column(String(30))

    # ── Dates ────────────────────────────────────────────────
    booking_date: Mapped[date | None] = mapped_column(Date)
    departure_date: Mapped[date | None] = mapped_column(Date)
    estimated_arrival: Mapped[date | None] = mapped_column(Date)
    actual_arrival: Mapped[date | None] = mapped_column(Date)

    total_cost: Mapped[float] = mapped_column(Float, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    notes: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    client = relationship("Client", lazy="joined")
    supplier = relationship("Supplier", lazy="joined")

    @property
    def client_name(self) -> str | None:
        return self.client.company_name if self.client else None

    @property
    def supplier_name(self) -> str | None:
        return self.supplier.name if self.supplier else None

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATUSES

    @property
    def delivered_on_time(self) -> bool:
        return (
            self.status == "delivered"
            and self.actual_arrival is not None
            and self.estimated_arrival is not None
            and self.actual_arrival <= self.estimated_arrival
        )

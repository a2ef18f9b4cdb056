"""Container — an owned shipping container in the fleet.

Lifecycle:  available → in_use (linked to a shipment) → available
            available ↔ maintenance, any → damaged
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Container(Base):
    __tablename__ = "containers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    container_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    # ISO 6346 number painted on the box, e.g. "MSCU1234567"
    container_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    # 20ft_standard | 40ft_standard | 40ft_high_cube | 20ft_high_cube |
    # 40ft_refrigerated | 20ft_refrigerated
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    # available | in_use | maintenance | damaged
    status: Mapped[str] = mapped_column(String(20), default="available", index=True)
    location: Mapped[str | None] = mapped_column(String(255))
    current_shipment_id: Mapped[str | None] = mapped_column(String(36))

    # excellent | good | fair | poor
    condition: Mapped[str] = mapped_column(String(20), default="good")
    last_inspection_date: Mapped[date | None] = mapped_column(Date)
    purchase_date: Mapped[date | None] = mapped_column(Date)
    purchase_price: Mapped[float | None] = mapped_column(Float)

    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

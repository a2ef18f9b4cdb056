"""Supplier — a freight, port, customs or haulage service provider."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    supplier_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    trading_name: Mapped[str | None] = mapped_column(String(255))
    # ["ocean_freight", "customs", ...]
    service_types: Mapped[list] = mapped_column(JSON, default=list)

    contact_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_position: Mapped[str | None] = mapped_column(String(100))
    contact_email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    contact_phone: Mapped[str] = mapped_column(String(30), nullable=False)

    address_street: Mapped[str | None] = mapped_column(String(255))
    address_city: Mapped[str] = mapped_column(String(100), nullable=False)
    address_state: Mapped[str | None] = mapped_column(String(100))
    address_postal_code: Mapped[str | None] = mapped_column(String(20))
    address_country: Mapped[str] = mapped_column(String(100), nullable=False)

    # {"bank_name": ..., "account_name": ..., "account_number": ..., "swift_code": ...}
    banking: Mapped[dict | None] = mapped_column(JSON)
    # [{"contract_number": ..., "start_date": ..., "end_date": ..., "value": ...}]
    contracts: Mapped[list] = mapped_column(JSON, default=list)

    # active | inactive | pending
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    rating: Mapped[float | None] = mapped_column(Float)
    # net_15 | net_30 | net_45 | net_60 | net_90 | immediate | custom
    payment_terms: Mapped[str] = mapped_column(String(20), default="net_30")

    # ── Performance ──────────────────────────────────────────
    total_shipments: Mapped[int] = mapped_column(Integer, default=0)
    active_contracts: Mapped[int] = mapped_column(Integer, default=0)
    on_time_rate: Mapped[float | None] = mapped_column(Float)

    tags: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

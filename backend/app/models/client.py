"""Client — a customer company whose cargo we move.

Portal users (user_type="client") link to a client via `users.client_id`
and only ever see that client's shipments, invoices and tickets.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    trading_name: Mapped[str | None] = mapped_column(String(255))
    industry: Mapped[str | None] = mapped_column(String(100))
    website: Mapped[str | None] = mapped_column(String(255))

    # ── Contact person ───────────────────────────────────────
    contact_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_position: Mapped[str | None] = mapped_column(String(100))
    contact_email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    contact_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    contact_alternate_phone: Mapped[str | None] = mapped_column(String(30))

    # ── Address ──────────────────────────────────────────────
    address_street: Mapped[str | None] = mapped_column(String(255))
    address_city: Mapped[str] = mapped_column(String(100), nullable=False)
    address_state: Mapped[str | None] = mapped_column(String(100))
    address_postal_code: Mapped[str | None] = mapped_column(String(20))
    address_country: Mapped[str] = mapped_column(String(100), nullable=False)
    # {"same_as_address": true} or a full address dict
    billing_address: Mapped[dict | None] = mapped_column(JSON)

    # portal | direct | referral
    source: Mapped[str] = mapped_column(String(20), default="direct")
    # active | inactive | suspended
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)

    # ── Commercial terms ─────────────────────────────────────
    credit_limit: Mapped[float] = mapped_column(Float, default=0)
    current_balance: Mapped[float] = mapped_column(Float, default=0)
    payment_terms: Mapped[int] = mapped_column(Integer, default=30)  # days
    preferred_currency: Mapped[str] = mapped_column(String(3), default="USD")
    tax_id: Mapped[str | None] = mapped_column(String(50))
    registration_number: Mapped[str | None] = mapped_column(String(50))

    notes: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def contact_name(self) -> str:
        return f"{self.contact_first_name} {self.contact_last_name}".strip()

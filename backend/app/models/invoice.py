"""Invoice — a bill raised against a client, optionally for one shipment.

Line items live in a JSON list; subtotal/tax/total are recomputed by the
router whenever items change.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

OPEN_STATUSES = ("draft", "sent", "overdue")


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    invoice_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )

    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id"), nullable=False, index=True
    )
    shipment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("shipments.id"), index=True
    )

    issue_date: Mapped[date] = mapped_column(Date, default=date.today)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # draft | sent | paid | overdue | cancelled
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)

    # [{description, quantity, unit_price, amount}]
    items: Mapped[list] = mapped_column(JSON, default=list)
    subtotal: Mapped[float] = mapped_column(Float, default=0)
    tax: Mapped[float] = mapped_column(Float, default=0)
    total: Mapped[float] = mapped_column(Float, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    payment_method: Mapped[str | None] = mapped_column(String(50))
    paid_date: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    client = relationship("Client", lazy="joined")

    @property
    def client_name(self) -> str | None:
        return self.client.company_name if self.client else None

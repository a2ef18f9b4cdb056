import uuid
import datetime as dt

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class IncomeSource(Base):
    __tablename__ = "income_sources"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    value: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)


class Income(Base):
    __tablename__ = "income"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    date: Mapped[dt.date] = mapped_column(Date, default=dt.date.today, index=True)

    shipment_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("shipments.id"))
    client_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("clients.id"))
    invoice_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("invoices.id"))

    payment_method: Mapped[str] = mapped_column(String(30), default="Bank Transfer")
    # pending | received | partially_paid
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    amount_received: Mapped[float] = mapped_column(Float, default=0)
    due_date: Mapped[dt.date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow
    )

    @property
    def balance_due(self) -> float:
        return round((self.amount or 0) - (self.amount_received or 0), 2)

    @property
    def is_overdue(self) -> bool:
        return (
            self.due_date is not None
            and self.due_date < dt.date.today()
            and self.balance_due > 0
        )

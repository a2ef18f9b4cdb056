"""SupportTicket — a client-portal support request with a message thread.

Messages are stored inline as a JSON list:
  [{sender_id, sender_name, message, is_internal, created_at}]
Internal messages are staff-only notes and never shown to the client.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    ticket_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )
    client_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clients.id"), index=True
    )
    created_by: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # general | shipment | billing | technical | complaint
    category: Mapped[str] = mapped_column(String(20), default="general")
    # low | medium | high | urgent
    priority: Mapped[str] = mapped_column(String(10), default="medium")
    # open | in_progress | waiting_customer | resolved | closed
    status: Mapped[str] = mapped_column(String(20), default="open", index=True)

    assigned_to: Mapped[str | None] = mapped_column(String(36))
    related_shipment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("shipments.id")
    )
    messages: Mapped[list] = mapped_column(JSON, default=list)

    resolved_at: Mapped[datetime | None] = mapped_column(DateTime)
    resolved_by: Mapped[str | None] = mapped_column(String(36))
    resolution: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

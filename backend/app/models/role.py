"""Role — a named permission bundle assigned to users.

System roles (super_admin, admin, operations_manager, client_user) are
seeded by `app.services.seed` and can only be changed by holders of `*`.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # lowercase + underscores only, e.g. "operations_manager"
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # admin | client
    user_type: Mapped[str] = mapped_column(String(20), default="client", index=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    # ["shipments:read", "tracking:write", ...] or ["*"]
    permissions: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    users = relationship("User", back_populates="role", passive_deletes=True)

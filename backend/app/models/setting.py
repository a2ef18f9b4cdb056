import uuid
from typing import Any
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# Keys for the two structured settings groups
COMPANY_INFO = "COMPANY_INFO"
SYSTEM_PREFERENCES = "SYSTEM_PREFERENCES"


class Setting(Base):
    """Key/value application setting. Keys are stored upper-case."""

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    # string | number | boolean | object | array
    type: Mapped[str] = mapped_column(String(10), default="string")
    # general | email | notification | billing | security
    category: Mapped[str] = mapped_column(String(20), default="general")
    description: Mapped[str | None] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    updated_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

REPORT_TYPES = (
    "shipment",
    "financial",
    "client_performance",
    "container_utilization",
    "performance_analytics",
    "supplier_performance",
)
REPORT_FORMATS = ("pdf", "excel", "csv")


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    report_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    format: Mapped[str] = mapped_column(String(10), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    filters: Mapped[dict] = mapped_column(JSON, default=dict)

    # generating | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="generating", index=True)
    error_message: Mapped[str | None] = mapped_column(Text)

    file_path: Mapped[str | None] = mapped_column(String(500))
    file_size: Mapped[str | None] = mapped_column(String(20))
    file_size_bytes: Mapped[int] = mapped_column(Integer, default=0)
    download_count: Mapped[int] = mapped_column(Integer, default=0)

    record_count: Mapped[int] = mapped_column(Integer, default=0)
    total_value: Mapped[float] = mapped_column(Float, default=0)
    report_metadata: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    generated_by: Mapped[str | None] = mapped_column(String(36), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

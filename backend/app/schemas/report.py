from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, EmailStr, Field


class ReportGenerateRequest(BaseModel):
    # Validated in the router so bad values answer 400, not 422
    type: str
    format: str = "pdf"
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    filters: dict = {}


class ReportConfigureRequest(BaseModel):
    type: str


class ReportEmailRequest(BaseModel):
    recipients: list[EmailStr] = []
    message: str | None = None


class ReportOut(BaseModel):
    id: str
    report_code: str
    name: str
    type: str
    format: str
    start_date: date
    end_date: date
    filters: dict | None
    status: str
    error_message: str | None
    file_size: str | None
    download_count: int
    record_count: int
    total_value: float
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("report_metadata", "metadata")
    )
    generated_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReportStats(BaseModel):
    total_reports: int
    this_month: int
    scheduled_reports: int = 0
    storage_used: str
    storage_used_bytes: int

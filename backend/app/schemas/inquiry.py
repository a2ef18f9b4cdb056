from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.validators import validate_phone


class InquiryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = None
    company: str | None = None
    subject: str | None = None
    message: str = Field(..., min_length=10)
    service_type: str | None = None

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str | None) -> str | None:
        return validate_phone(v)


class InquiryReceipt(BaseModel):
    reference: str
    message: str

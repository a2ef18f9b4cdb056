from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import SLUG_REGEX, one_of


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=50)
    display_name: str = Field(..., max_length=100)
    description: str | None = None
    user_type: str = "admin"
    permissions: list[str] = []

    @field_validator("name")
    @classmethod
    def slug_name(cls, v: str) -> str:
        if not SLUG_REGEX.match(v):
            raise ValueError("Role name may only contain lowercase letters and underscores")
        return v

    @field_validator("user_type")
    @classmethod
    def valid_user_type(cls, v: str) -> str:
        return one_of(v, ("admin", "client"), "user_type")


class RoleUpdate(BaseModel):
    display_name: str | None = None
    description: str | None = None
    permissions: list[str] | None = None


class RoleOut(BaseModel):
    id: str
    name: str
    display_name: str
    description: str | None
    user_type: str
    is_system: bool
    permissions: list[str]
    user_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}

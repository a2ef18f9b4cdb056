"""Reusable field validators shared by the request schemas.

Usage in a schema:

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str | None) -> str | None:
        return one_of(v, SHIPMENT_STATUSES, "status")
"""

import re
from typing import Iterable

PHONE_REGEX = re.compile(r"^\+?[0-9\s\-()]{7,20}$")
URL_REGEX = re.compile(
    r"^https?://"
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,63}\.?|"
    r"localhost|"
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
    r"(?::\d+)?"
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)
SLUG_REGEX = re.compile(r"^[a-z_]+$")

MIN_PASSWORD_LENGTH = 8


def one_of(value, allowed: Iterable, field: str):
    """Enum membership check that lets None through (partial updates)."""
    if value is not None and value not in allowed:
        raise ValueError(f"{field} must be one of: {', '.join(str(a) for a in allowed)}")
    return value


def validate_phone(value: str | None) -> str | None:
    if value is None or value == "":
        return value
    value = value.strip()
    if not PHONE_REGEX.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


def validate_url(value: str | None) -> str | None:
    if not value:
        return value
    value = value.strip()
    if not URL_REGEX.match(value):
        raise ValueError("Please provide a valid URL")
    return value


def validate_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


def slugify_label(label: str) -> str:
    """'Port Fees & Dues' → 'port_fees_dues'."""
    value = label.strip().lower().replace(" ", "_")
    value = re.sub(r"[^a-z0-9_]", "", value)
    return re.sub(r"_+", "_", value).strip("_")

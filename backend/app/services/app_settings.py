"""Read/write helpers for key/value settings rows.

Keys are normalised to upper case on every lookup.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.setting import Setting


def infer_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "string"


async def get_setting(db: AsyncSession, key: str) -> Setting | None:
    result = await db.execute(select(Setting).where(Setting.key == key.upper()))
    return result.scalar_one_or_none()


async def get_setting_value(db: AsyncSession, key: str, default: Any = None) -> Any:
    setting = await get_setting(db, key)
    if setting is None or setting.value is None:
        return default
    return setting.value


async def upsert_setting(
    db: AsyncSession,
    key: str,
    value: Any,
    *,
    updated_by: str | None = None,
    type: str | None = None,
    category: str | None = None,
    description: str | None = None,
    is_public: bool | None = None,
) -> Setting:
    """Create or replace a setting. Type is inferred from the value when omitted."""
    setting = await get_setting(db, key)
    if setting is None:
        setting = Setting(key=key.upper(), category=category or "general")
        db.add(setting)
    elif category is not None:
        setting.category = category

    setting.value = value
    setting.type = type or infer_type(value)
    setting.updated_by = updated_by
    if description is not None:
        setting.description = description
    if is_public is not None:
        setting.is_public = is_public
    await db.flush()
    return setting

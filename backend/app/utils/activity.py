"""Activity log helpers: write an entry, read the recent feed.

Writers call `log_activity` inside the request's transaction, right after
the change they describe:

    await log_activity(
        db, user, action="cancelled", entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=f"Cancelled shipment {shipment.shipment_code}",
    )

Nothing is flushed here; the entry is committed together with the change.
The dashboard reads the feed back with `recent_activity`.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ActivityLog
from app.models.user import User


async def log_activity(
    db: AsyncSession,
    user: User,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    entity_code: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> None:
    db.add(ActivityLog(
        user_id=user.id,
        user_name=user.full_name,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_code=entity_code,
        summary=summary or f"{action.replace('_', ' ').capitalize()} {entity_type} {entity_code or ''}".rstrip(),
        details=details,
    ))


async def recent_activity(
    db: AsyncSession,
    limit: int = 10,
    entity_type: str | None = None,
) -> list[ActivityLog]:
    """Newest entries first, optionally for one kind of record."""
    stmt = select(ActivityLog)
    if entity_type:
        stmt = stmt.where(ActivityLog.entity_type == entity_type)
    result = await db.execute(stmt.order_by(ActivityLog.created_at.desc()).limit(limit))
    return list(result.scalars().all())

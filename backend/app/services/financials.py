"""Shared logic for the expense and income ledgers.

Both ledgers have a lookup table (expense categories / income sources)
that admins can extend, and the same monthly roll-up on their stats page.
"""

import datetime as dt
from collections import defaultdict

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import PermissionDeniedError, ResourceNotFoundError
from app.schemas.validators import slugify_label


# ── Lookups (categories / sources) ───────────────────────────

async def list_lookups(db: AsyncSession, model) -> list:
    result = await db.execute(select(model).order_by(model.is_system.desc(), model.label))
    return list(result.scalars().all())


async def lookup_exists(db: AsyncSession, model, value: str) -> bool:
    result = await db.execute(select(model.id).where(model.value == value))
    return result.scalar_one_or_none() is not None


async def create_lookup(db: AsyncSession, model, label: str, created_by: str, noun: str):
    value = slugify_label(label)
    if not value:
        raise HTTPException(status_code=400, detail=f"Invalid {noun} name")
    if await lookup_exists(db, model, value):
        raise HTTPException(status_code=400, detail=f"{noun.capitalize()} already exists")

    entry = model(value=value, label=label.strip(), is_system=False, created_by=created_by)
    db.add(entry)
    await db.flush()
    return entry


async def delete_lookup(db: AsyncSession, model, lookup_id: str, usage_column, noun: str) -> None:
    """Remove a custom lookup. System entries and entries in use are refused."""
    entry = await db.get(model, lookup_id)
    if not entry:
        raise ResourceNotFoundError(noun.capitalize())
    if entry.is_system:
        raise PermissionDeniedError(f"Cannot delete a system {noun}")

    in_use = (await db.execute(
        select(func.count()).select_from(usage_column.class_).where(usage_column == entry.value)
    )).scalar() or 0
    if in_use:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete {noun}: used by {in_use} record(s)",
        )
    await db.delete(entry)
    await db.flush()


# ── Stats ────────────────────────────────────────────────────

def date_window(model, start_date: dt.date | None, end_date: dt.date | None) -> list:
    clauses = []
    if start_date:
        clauses.append(model.date >= start_date)
    if end_date:
        clauses.append(model.date <= end_date)
    return clauses


def by_month(rows) -> list[dict]:
    """[(date, amount), ...] → [{"month": "YYYY-MM", "total": ...}] in calendar order."""
    totals: dict[str, float] = defaultdict(float)
    for day, amount in rows:
        totals[day.strftime("%Y-%m")] += amount or 0
    return [{"month": m, "total": round(t, 2)} for m, t in sorted(totals.items())]


async def grouped_totals(db: AsyncSession, model, column, clauses: list) -> list[dict]:
    rows = (await db.execute(
        select(column, func.coalesce(func.sum(model.amount), 0), func.count())
        .where(*clauses)
        .group_by(column)
        .order_by(func.sum(model.amount).desc())
    )).all()
    return [
        {column.key: key, "total": round(float(total), 2), "count": count}
        for key, total, count in rows
    ]


async def status_counts(db: AsyncSession, model, clauses: list) -> dict[str, int]:
    rows = (await db.execute(
        select(model.status, func.count()).where(*clauses).group_by(model.status)
    )).all()
    return dict(rows)

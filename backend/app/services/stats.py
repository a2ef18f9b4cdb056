"""Aggregate figures shared by the list pages and the dashboard.

Every function takes an optional `client_id` so own-scoped callers (client
portal users) get the same numbers restricted to their company.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invoice import Invoice
from app.models.shipment import FINAL_STATUSES, Shipment


async def shipment_stats(db: AsyncSession, client_id: str | None = None) -> dict:
    """total, active, delivered, delayed, by_status.

    Delayed: still in transit, past its ETA, and not yet arrived.
    """
    scope = [Shipment.client_id == client_id] if client_id is not None else []

    by_status = dict((await db.execute(
        select(Shipment.status, func.count()).where(*scope).group_by(Shipment.status)
    )).all())
    delayed = (await db.execute(
        select(func.count()).select_from(Shipment).where(
            *scope,
            Shipment.status == "in_transit",
            Shipment.estimated_arrival < date.today(),
            Shipment.actual_arrival.is_(None),
        )
    )).scalar() or 0

    return {
        "total": sum(by_status.values()),
        "active": sum(n for s, n in by_status.items() if s not in FINAL_STATUSES),
        "delivered": by_status.get("delivered", 0),
        "delayed": delayed,
        "by_status": by_status,
    }


async def invoice_stats(db: AsyncSession, client_id: str | None = None) -> dict:
    """Counts by state and amounts; cancelled invoices carry no amount."""
    scope = [Invoice.client_id == client_id] if client_id is not None else []

    rows = (await db.execute(
        select(Invoice.status, func.count(), func.coalesce(func.sum(Invoice.total), 0))
        .where(*scope)
        .group_by(Invoice.status)
    )).all()
    counts = {status: n for status, n, _ in rows}
    amounts = {status: float(total) for status, _, total in rows}

    total_amount = sum(v for s, v in amounts.items() if s != "cancelled")
    paid_amount = amounts.get("paid", 0.0)
    return {
        "count": {
            "total": sum(counts.values()),
            "pending": counts.get("draft", 0) + counts.get("sent", 0),
            "paid": counts.get("paid", 0),
            "overdue": counts.get("overdue", 0),
        },
        "amount": {
            "total": round(total_amount, 2),
            "paid": round(paid_amount, 2),
            "pending": round(total_amount - paid_amount, 2),
        },
    }

"""Back-office dashboard.

Endpoints:
    GET /api/dashboard/stats         Headline figures (cached 60 s)
    GET /api/dashboard/activity      Recent activity log entries
    GET /api/dashboard/top-clients   Clients ranked by shipment revenue
"""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.database import get_db
from app.models.client import Client
from app.models.container import Container
from app.models.invoice import Invoice
from app.models.shipment import Shipment
from app.models.user import User
from app.schemas.dashboard import ActivityOut, DashboardStats, TopClient
from app.services.stats import invoice_stats, shipment_stats
from app.utils.activity import recent_activity
from app.utils.cache import cached

router = APIRouter()


async def _paid_between(db: AsyncSession, start: date, end: date) -> float:
    total = (await db.execute(
        select(func.coalesce(func.sum(Invoice.total), 0)).where(
            Invoice.status == "paid",
            Invoice.paid_date >= start,
            Invoice.paid_date < end,
        )
    )).scalar()
    return round(float(total or 0), 2)


async def _count_by_status(db: AsyncSession, model) -> dict[str, int]:
    return dict((await db.execute(
        select(model.status, func.count()).group_by(model.status)
    )).all())


@router.get("/stats", response_model=DashboardStats)
@cached(ttl=60, prefix="dashboard")
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("shipments:read")),
):
    invoices = await invoice_stats(db)

    this_month_start = date.today().replace(day=1)
    last_month_start = (this_month_start - timedelta(days=1)).replace(day=1)
    next_month_start = (this_month_start + timedelta(days=32)).replace(day=1)
    this_month = await _paid_between(db, this_month_start, next_month_start)
    last_month = await _paid_between(db, last_month_start, this_month_start)
    growth = round((this_month - last_month) / last_month * 100, 1) if last_month else 0

    clients = await _count_by_status(db, Client)
    containers = await _count_by_status(db, Container)

    return {
        "shipments": await shipment_stats(db),
        "invoices": invoices,
        "revenue": {
            "total": invoices["amount"]["total"],
            "this_month": this_month,
            "last_month": last_month,
            "growth": growth,
        },
        "clients": {
            "total": sum(clients.values()),
            "active": clients.get("active", 0),
            "inactive": sum(n for s, n in clients.items() if s != "active"),
        },
        "containers": {
            "total": sum(containers.values()),
            "available": containers.get("available", 0),
            "in_use": containers.get("in_use", 0),
            "maintenance": containers.get("maintenance", 0),
        },
    }


@router.get("/activity", response_model=list[ActivityOut])
async def activity_feed(
    limit: int = Query(10, ge=1, le=100),
    entity_type: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("shipments:read")),
):
    return await recent_activity(db, limit=limit, entity_type=entity_type)


@router.get("/top-clients", response_model=list[TopClient])
async def top_clients(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("shipments:read")),
):
    revenue = func.coalesce(func.sum(Shipment.total_cost), 0)
    rows = (await db.execute(
        select(
            Client.id, Client.client_code, Client.company_name,
            func.count(Shipment.id), revenue,
        )
        .join(Shipment, Shipment.client_id == Client.id)
        .where(Shipment.status != "cancelled")
        .group_by(Client.id, Client.client_code, Client.company_name)
        .order_by(revenue.desc())
        .limit(limit)
    )).all()
    return [
        TopClient(
            client_id=cid, client_code=code, company_name=name,
            shipment_count=count, total_revenue=round(float(total), 2),
        )
        for cid, code, name, count, total in rows
    ]

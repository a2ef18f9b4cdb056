"""Income ledger router.

Endpoints:
    GET    /api/income/                  List (source, status, date range, search)
    GET    /api/income/stats             Totals, received, outstanding, roll-ups
    GET    /api/income/sources           Source lookup list
    POST   /api/income/sources           Add a custom source
    DELETE /api/income/sources/{id}      Remove a custom source
    GET    /api/income/{id}              Detail
    POST   /api/income/                  Create
    PUT    /api/income/{id}              Update
    POST   /api/income/{id}/payment      Record a (partial) payment
    DELETE /api/income/{id}              Delete
"""

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.income import Income, IncomeSource
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.financial import (
    IncomeCreate,
    IncomeOut,
    IncomePayment,
    IncomeStats,
    IncomeUpdate,
    LookupCreate,
    LookupOut,
)
from app.services import financials
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache

router = APIRouter()


async def _get_income(db: AsyncSession, income_id: str) -> Income:
    income = await db.get(Income, income_id)
    if not income:
        raise ResourceNotFoundError("Income record")
    return income


async def _check_source(db: AsyncSession, value: str) -> None:
    if not await financials.lookup_exists(db, IncomeSource, value):
        raise HTTPException(status_code=400, detail=f"Invalid source: {value}")


def _settle_status(income: Income) -> None:
    if income.amount_received <= 0:
        income.status = "pending"
    elif income.amount_received >= income.amount:
        income.status = "received"
    else:
        income.status = "partially_paid"


# ── List / stats ─────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[IncomeOut])
async def list_income(
    source: str | None = None,
    status: str | None = None,
    client_id: str | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    base = select(Income).where(*financials.date_window(Income, date_from, date_to))
    if source:
        base = base.where(Income.source == source)
    if status:
        base = base.where(Income.status == status)
    if client_id:
        base = base.where(Income.client_id == client_id)
    if search:
        term = f"%{search}%"
        base = base.where(or_(Income.description.ilike(term), Income.notes.ilike(term)))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Income.date.desc(), Income.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[IncomeOut.model_validate(i) for i in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=IncomeStats)
async def income_stats(
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    clauses = financials.date_window(Income, start_date, end_date)
    rows = (await db.execute(
        select(Income.date, Income.amount, Income.amount_received).where(*clauses)
    )).all()

    total_amount = sum(amount or 0 for _, amount, _ in rows)
    total_received = sum(received or 0 for _, _, received in rows)
    return IncomeStats(
        total_amount=round(total_amount, 2),
        total_received=round(total_received, 2),
        outstanding=round(total_amount - total_received, 2),
        count=len(rows),
        by_source=await financials.grouped_totals(db, Income, Income.source, clauses),
        by_status=await financials.status_counts(db, Income, clauses),
        by_month=financials.by_month((day, amount) for day, amount, _ in rows),
    )


# ── Sources ──────────────────────────────────────────────────

@router.get("/sources", response_model=list[LookupOut])
async def list_sources(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    return await financials.list_lookups(db, IncomeSource)


@router.post("/sources", response_model=LookupOut, status_code=201)
async def create_source(
    body: LookupCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    return await financials.create_lookup(db, IncomeSource, body.label, user.id, "source")


@router.delete("/sources/{source_id}", status_code=204)
async def delete_source(
    source_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:write")),
):
    await financials.delete_lookup(db, IncomeSource, source_id, Income.source, "source")
    return Response(status_code=204)


# ── CRUD ─────────────────────────────────────────────────────

@router.get("/{income_id}", response_model=IncomeOut)
async def get_income(
    income_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    return await _get_income(db, income_id)


@router.post("/", response_model=IncomeOut, status_code=201)
async def create_income(
    body: IncomeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    await _check_source(db, body.source)
    if body.client_id and not await db.get(Client, body.client_id):
        raise HTTPException(status_code=404, detail="Client not found")

    data = body.model_dump()
    data["date"] = data["date"] or dt.date.today()
    income = Income(**data, created_by=user.id)
    if income.amount_received:
        _settle_status(income)
    db.add(income)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="income", entity_id=income.id,
        summary=f"Recorded {income.source} income of {income.amount:,.2f} {income.currency}",
    )
    await invalidate_cache("dashboard:*")
    return income


@router.put("/{income_id}", response_model=IncomeOut)
async def update_income(
    income_id: str,
    body: IncomeUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:write")),
):
    income = await _get_income(db, income_id)
    updates = body.model_dump(exclude_unset=True)
    if updates.get("source"):
        await _check_source(db, updates["source"])

    for key, value in updates.items():
        if value is not None:
            setattr(income, key, value)
    if "amount" in updates or "amount_received" in updates:
        _settle_status(income)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return income


@router.post("/{income_id}/payment", response_model=IncomeOut)
async def record_payment(
    income_id: str,
    body: IncomePayment,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    if body.amount <= 0:
        raise HTTPException(status_code=400, detail="Payment amount must be greater than zero")

    income = await _get_income(db, income_id)
    income.amount_received = round((income.amount_received or 0) + body.amount, 2)
    _settle_status(income)
    await db.flush()

    await log_activity(
        db, user, action="payment", entity_type="income", entity_id=income.id,
        summary=f"Payment of {body.amount:,.2f} {income.currency} received ({income.status})",
    )
    await invalidate_cache("dashboard:*")
    return income


@router.delete("/{income_id}", status_code=204)
async def delete_income(
    income_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    income = await _get_income(db, income_id)
    await log_activity(
        db, user, action="deleted", entity_type="income", entity_id=income.id,
        summary=f"Deleted {income.source} income of {income.amount:,.2f} {income.currency}",
    )
    await db.delete(income)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return Response(status_code=204)

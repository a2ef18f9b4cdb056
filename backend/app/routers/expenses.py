"""Expense ledger router.

Endpoints:
    GET    /api/expenses/                   List (category, status, date range, search)
    GET    /api/expenses/stats              Totals by category / status / month
    GET    /api/expenses/categories         Category lookup list
    POST   /api/expenses/categories         Add a custom category
    DELETE /api/expenses/categories/{id}    Remove a custom category
    GET    /api/expenses/{id}               Detail
    POST   /api/expenses/                   Create
    PUT    /api/expenses/{id}               Update
    DELETE /api/expenses/{id}               Delete
"""

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.expense import Expense, ExpenseCategory
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.financial import (
    ExpenseCreate,
    ExpenseOut,
    ExpenseStats,
    ExpenseUpdate,
    LookupCreate,
    LookupOut,
)
from app.services import financials
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache

router = APIRouter()


async def _get_expense(db: AsyncSession, expense_id: str) -> Expense:
    expense = await db.get(Expense, expense_id)
    if not expense:
        raise ResourceNotFoundError("Expense")
    return expense


async def _check_category(db: AsyncSession, value: str) -> None:
    if not await financials.lookup_exists(db, ExpenseCategory, value):
        raise HTTPException(status_code=400, detail=f"Invalid category: {value}")


# ── List / stats ─────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[ExpenseOut])
async def list_expenses(
    category: str | None = None,
    status: str | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    base = select(Expense).where(*financials.date_window(Expense, date_from, date_to))
    if category:
        base = base.where(Expense.category == category)
    if status:
        base = base.where(Expense.status == status)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Expense.description.ilike(term),
            Expense.invoice_number.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Expense.date.desc(), Expense.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[ExpenseOut.model_validate(e) for e in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=ExpenseStats)
async def expense_stats(
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    clauses = financials.date_window(Expense, start_date, end_date)
    rows = (await db.execute(select(Expense.date, Expense.amount).where(*clauses))).all()

    return ExpenseStats(
        total_amount=round(sum(amount or 0 for _, amount in rows), 2),
        count=len(rows),
        by_category=await financials.grouped_totals(db, Expense, Expense.category, clauses),
        by_status=await financials.status_counts(db, Expense, clauses),
        by_month=financials.by_month(rows),
    )


# ── Categories ───────────────────────────────────────────────

@router.get("/categories", response_model=list[LookupOut])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    return await financials.list_lookups(db, ExpenseCategory)


@router.post("/categories", response_model=LookupOut, status_code=201)
async def create_category(
    body: LookupCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    return await financials.create_lookup(db, ExpenseCategory, body.label, user.id, "category")


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:write")),
):
    await financials.delete_lookup(db, ExpenseCategory, category_id, Expense.category, "category")
    return Response(status_code=204)


# ── CRUD ─────────────────────────────────────────────────────

@router.get("/{expense_id}", response_model=ExpenseOut)
async def get_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:read")),
):
    return await _get_expense(db, expense_id)


@router.post("/", response_model=ExpenseOut, status_code=201)
async def create_expense(
    body: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    await _check_category(db, body.category)

    data = body.model_dump()
    data["date"] = data["date"] or dt.date.today()
    expense = Expense(**data, created_by=user.id)
    db.add(expense)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="expense", entity_id=expense.id,
        summary=f"Recorded {expense.category} expense of {expense.amount:,.2f} {expense.currency}",
    )
    await invalidate_cache("dashboard:*")
    return expense


@router.put("/{expense_id}", response_model=ExpenseOut)
async def update_expense(
    expense_id: str,
    body: ExpenseUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("financials:write")),
):
    expense = await _get_expense(db, expense_id)
    updates = body.model_dump(exclude_unset=True)
    if updates.get("category"):
        await _check_category(db, updates["category"])

    for key, value in updates.items():
        if value is not None:
            setattr(expense, key, value)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return expense


@router.delete("/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("financials:write")),
):
    expense = await _get_expense(db, expense_id)
    await log_activity(
        db, user, action="deleted", entity_type="expense", entity_id=expense.id,
        summary=f"Deleted {expense.category} expense of {expense.amount:,.2f} {expense.currency}",
    )
    await db.delete(expense)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return Response(status_code=204)

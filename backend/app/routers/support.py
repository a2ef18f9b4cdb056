"""Support desk router.

Endpoints:
    GET  /api/support/                 List tickets (own-scope: tickets you opened)
    GET  /api/support/stats            total / open / in_progress / resolved
    GET  /api/support/{id}             Detail (internal notes hidden from clients)
    POST /api/support/                 Open a ticket (any authenticated user)
    PUT  /api/support/{id}             Triage: status, priority, assignment, resolution
    POST /api/support/{id}/messages    Add a message to the thread
    PUT  /api/support/{id}/close       Close
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user, require_any_permission, require_permission, user_can
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.support_ticket import SupportTicket
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.support import (
    TicketCreate,
    TicketMessageCreate,
    TicketOut,
    TicketStats,
    TicketUpdate,
)
from app.utils.activity import log_activity
from app.utils.numbering import generate_code

logger = logging.getLogger(__name__)

router = APIRouter()

_read = require_any_permission("support:read", "support:read:own")


# ── Helpers ──────────────────────────────────────────────────

def _own_only(user: User) -> bool:
    return not user_can(user, "support:read")


def _ticket_out(ticket: SupportTicket, user: User) -> TicketOut:
    out = TicketOut.model_validate(ticket)
    if _own_only(user):
        out.messages = [m for m in out.messages if not m.is_internal]
    return out


async def _get_ticket(db: AsyncSession, ticket_id: str, user: User) -> SupportTicket:
    ticket = await db.get(SupportTicket, ticket_id)
    if not ticket:
        raise ResourceNotFoundError("Ticket")
    if _own_only(user) and ticket.created_by != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return ticket


# ── Reads ────────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[TicketOut])
async def list_tickets(
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    base = select(SupportTicket)
    if _own_only(user):
        base = base.where(SupportTicket.created_by == user.id)
    if status:
        base = base.where(SupportTicket.status == status)
    if priority:
        base = base.where(SupportTicket.priority == priority)
    if category:
        base = base.where(SupportTicket.category == category)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            SupportTicket.ticket_number.ilike(term),
            SupportTicket.subject.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(SupportTicket.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[_ticket_out(t, user) for t in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=TicketStats)
async def ticket_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    stmt = select(SupportTicket.status, func.count()).group_by(SupportTicket.status)
    if _own_only(user):
        stmt = stmt.where(SupportTicket.created_by == user.id)
    by_status = dict((await db.execute(stmt)).all())
    return TicketStats(
        total=sum(by_status.values()),
        open=by_status.get("open", 0),
        in_progress=by_status.get("in_progress", 0),
        resolved=by_status.get("resolved", 0) + by_status.get("closed", 0),
    )


@router.get("/{ticket_id}", response_model=TicketOut)
async def get_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    return _ticket_out(await _get_ticket(db, ticket_id, user), user)


# ── Writes ───────────────────────────────────────────────────

@router.post("/", response_model=TicketOut, status_code=201)
async def create_ticket(
    body: TicketCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ticket = SupportTicket(
        ticket_number=await generate_code(db, "ticket"),
        client_id=user.client_id if user.user_type == "client" else None,
        created_by=user.id,
        messages=[],
        **body.model_dump(),
    )
    db.add(ticket)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="ticket",
        entity_id=ticket.id, entity_code=ticket.ticket_number,
        summary=f"Opened ticket {ticket.ticket_number}: {ticket.subject}",
    )
    return _ticket_out(ticket, user)


@router.put("/{ticket_id}", response_model=TicketOut)
async def update_ticket(
    ticket_id: str,
    body: TicketUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("support:write")),
):
    ticket = await _get_ticket(db, ticket_id, user)
    updates = body.model_dump(exclude_unset=True)

    for key, value in updates.items():
        setattr(ticket, key, value)

    if updates.get("status") == "resolved" and ticket.resolved_at is None:
        ticket.resolved_at = datetime.utcnow()
        ticket.resolved_by = user.id
    await db.flush()
    return _ticket_out(ticket, user)


@router.post("/{ticket_id}/messages", response_model=TicketOut)
async def add_message(
    ticket_id: str,
    body: TicketMessageCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    ticket = await _get_ticket(db, ticket_id, user)
    own_only = _own_only(user)
    if own_only and body.is_internal:
        raise HTTPException(status_code=403, detail="Cannot post internal messages")
    if ticket.status == "closed":
        raise HTTPException(status_code=400, detail="Ticket is closed")

    # JSON column: assign a new list so the change is tracked
    ticket.messages = [*(ticket.messages or []), {
        "sender_id": user.id,
        "sender_name": user.full_name,
        "message": body.message,
        "is_internal": body.is_internal,
        "created_at": datetime.utcnow().isoformat(),
    }]
    if user.user_type == "client" and ticket.status == "waiting_customer":
        ticket.status = "open"
    await db.flush()
    return _ticket_out(ticket, user)


@router.put("/{ticket_id}/close", response_model=TicketOut)
async def close_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    ticket = await _get_ticket(db, ticket_id, user)
    if ticket.status == "closed":
        raise HTTPException(status_code=400, detail="Ticket is already closed")

    ticket.status = "closed"
    if ticket.resolved_at is None:
        ticket.resolved_at = datetime.utcnow()
        ticket.resolved_by = user.id
    await db.flush()

    await log_activity(
        db, user, action="closed", entity_type="ticket",
        entity_id=ticket.id, entity_code=ticket.ticket_number,
        summary=f"Closed ticket {ticket.ticket_number}",
    )
    return _ticket_out(ticket, user)

"""Client management router.

Endpoints:
    GET    /api/clients/              List clients (filters + search)
    GET    /api/clients/active/list   Active clients for pickers
    GET    /api/clients/{id}          Detail
    GET    /api/clients/{id}/stats    Shipment / invoice / balance summary
    POST   /api/clients/              Create client
    PUT    /api/clients/{id}          Update client
    DELETE /api/clients/{id}          Delete (refused while referenced)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_any_permission, require_permission
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.invoice import OPEN_STATUSES, Invoice
from app.models.shipment import FINAL_STATUSES, Shipment
from app.models.user import User
from app.schemas.client import (
    ClientCreate,
    ClientOut,
    ClientPickerItem,
    ClientStats,
    ClientUpdate,
)
from app.schemas.common import PaginatedResponse
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache
from app.utils.numbering import generate_code

router = APIRouter()


async def _get_client(db: AsyncSession, client_id: str) -> Client:
    client = await db.get(Client, client_id)
    if not client:
        raise ResourceNotFoundError("Client")
    return client


async def _email_taken(db: AsyncSession, email: str, exclude_id: str | None = None) -> bool:
    query = select(Client.id).where(func.lower(Client.contact_email) == email.lower())
    if exclude_id:
        query = query.where(Client.id != exclude_id)
    return (await db.execute(query)).first() is not None


# ── GET /api/clients/ ────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[ClientOut])
async def list_clients(
    status: str | None = None,
    source: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("clients:read")),
):
    base = select(Client)
    if status:
        base = base.where(Client.status == status)
    if source:
        base = base.where(Client.source == source)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Client.client_code.ilike(term),
            Client.company_name.ilike(term),
            Client.trading_name.ilike(term),
            Client.contact_email.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Client.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[ClientOut.model_validate(c) for c in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/active/list", response_model=list[ClientPickerItem])
async def list_active_clients(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_any_permission("clients:read", "shipments:write", "invoices:write")),
):
    result = await db.execute(
        select(Client).where(Client.status == "active").order_by(Client.company_name)
    )
    return [ClientPickerItem.model_validate(c) for c in result.scalars().all()]


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("clients:read")),
):
    return ClientOut.model_validate(await _get_client(db, client_id))


@router.get("/{client_id}/stats", response_model=ClientStats)
async def get_client_stats(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("clients:read")),
):
    client = await _get_client(db, client_id)

    shipments_total, shipments_active = (await db.execute(
        select(
            func.count(),
            func.count().filter(Shipment.status.notin_(FINAL_STATUSES)),
        ).where(Shipment.client_id == client_id)
    )).one()
    invoices_total, invoices_pending = (await db.execute(
        select(
            func.count(),
            func.count().filter(Invoice.status.in_(OPEN_STATUSES)),
        ).where(Invoice.client_id == client_id)
    )).one()

    return ClientStats(
        shipments={"total": shipments_total, "active": shipments_active},
        invoices={"total": invoices_total, "pending": invoices_pending},
        balance={
            "current": client.current_balance,
            "credit_limit": client.credit_limit,
            "available": client.credit_limit - client.current_balance,
        },
    )


# ── POST /api/clients/ ───────────────────────────────────────

@router.post("/", response_model=ClientOut, status_code=201)
async def create_client(
    body: ClientCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("clients:write")),
):
    if await _email_taken(db, body.contact_email):
        raise HTTPException(status_code=400, detail="Client with this email already exists")

    client = Client(
        client_code=await generate_code(db, "client"),
        **body.model_dump(),
    )
    client.contact_email = client.contact_email.lower()
    db.add(client)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="client",
        entity_id=client.id, entity_code=client.client_code,
        summary=f"Added client {client.company_name}",
    )
    await invalidate_cache("dashboard:*")
    return ClientOut.model_validate(client)


# ── PUT /api/clients/{id} ────────────────────────────────────

@router.put("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: str,
    body: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("clients:write")),
):
    client = await _get_client(db, client_id)
    updates = body.model_dump(exclude_unset=True)

    email = updates.get("contact_email")
    if email:
        updates["contact_email"] = email.lower()
        if await _email_taken(db, email, exclude_id=client.id):
            raise HTTPException(status_code=400, detail="Client with this email already exists")

    for key, value in updates.items():
        setattr(client, key, value)
    await db.flush()

    await log_activity(
        db, user, action="updated", entity_type="client",
        entity_id=client.id, entity_code=client.client_code,
        summary=f"Updated client {client.company_name}",
    )
    await invalidate_cache("dashboard:*")
    return ClientOut.model_validate(client)


# ── DELETE /api/clients/{id} ─────────────────────────────────

@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("clients:write")),
):
    client = await _get_client(db, client_id)

    shipment_count = (await db.execute(
        select(func.count()).select_from(Shipment).where(Shipment.client_id == client_id)
    )).scalar() or 0
    if shipment_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete client with {shipment_count} shipment(s)",
        )

    user_count = (await db.execute(
        select(func.count()).select_from(User).where(User.client_id == client_id)
    )).scalar() or 0
    if user_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete client with {user_count} portal user(s)",
        )

    await log_activity(
        db, user, action="deleted", entity_type="client",
        entity_id=client.id, entity_code=client.client_code,
        summary=f"Deleted client {client.company_name}",
    )
    await db.delete(client)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return Response(status_code=204)

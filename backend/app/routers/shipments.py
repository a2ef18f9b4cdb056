"""Shipment router.

Endpoints:
    GET    /api/shipments/            List (filters + search; own-scope aware)
    GET    /api/shipments/stats       Totals, active, delivered, delayed, by status
    GET    /api/shipments/{id}        Detail
    GET    /api/shipments/{id}/qr     QR code SVG for the tracking label
    POST   /api/shipments/            Create (reserves the linked container)
    PUT    /api/shipments/{id}        Update (not once delivered / cancelled)
    PUT    /api/shipments/{id}/cancel Cancel (releases the container)
    DELETE /api/shipments/{id}        Delete (refused while invoiced)
"""

import io
import logging
from datetime import date

import segno
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import (
    ensure_own_client,
    own_client_scope,
    require_any_permission,
    require_permission,
)
from app.config import settings
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.container import Container
from app.models.invoice import Invoice
from app.models.shipment import Shipment
from app.models.supplier import Supplier
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.shipment import ShipmentCreate, ShipmentOut, ShipmentStats, ShipmentUpdate
from app.services.stats import shipment_stats
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache
from app.utils.numbering import generate_code

logger = logging.getLogger(__name__)

router = APIRouter()

_read = require_any_permission("shipments:read", "shipments:read:own")


# ── Helpers ──────────────────────────────────────────────────

async def _get_shipment(db: AsyncSession, shipment_id: str) -> Shipment:
    shipment = await db.get(Shipment, shipment_id)
    if not shipment:
        raise ResourceNotFoundError("Shipment")
    return shipment


async def _reserve_container(db: AsyncSession, container_id: str, shipment: Shipment) -> None:
    container = await db.get(Container, container_id)
    if not container:
        raise HTTPException(status_code=404, detail="Container not found")
    if container.status != "available":
        raise HTTPException(status_code=400, detail="Container is not available")
    container.status = "in_use"
    container.current_shipment_id = shipment.id


async def release_container(db: AsyncSession, shipment: Shipment) -> None:
    """Return the shipment's container to the available pool."""
    if not shipment.container_id:
        return
    container = await db.get(Container, shipment.container_id)
    if container and container.current_shipment_id in (shipment.id, None):
        container.status = "available"
        container.current_shipment_id = None


# ── GET /api/shipments/ ──────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[ShipmentOut])
async def list_shipments(
    status: str | None = None,
    client_id: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    base = select(Shipment)
    scope = own_client_scope(user, "shipments")
    if scope is not None:
        base = base.where(Shipment.client_id == scope)
    elif client_id:
        base = base.where(Shipment.client_id == client_id)
    if status:
        base = base.where(Shipment.status == status)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Shipment.shipment_code.ilike(term),
            Shipment.tracking_number.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Shipment.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[ShipmentOut.model_validate(s) for s in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=ShipmentStats)
async def get_shipment_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    return await shipment_stats(db, own_client_scope(user, "shipments"))


@router.get("/{shipment_id}", response_model=ShipmentOut)
async def get_shipment(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    shipment = await _get_shipment(db, shipment_id)
    ensure_own_client(user, "shipments", shipment.client_id)
    return ShipmentOut.model_validate(shipment)


@router.get("/{shipment_id}/qr")
async def get_shipment_qr(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    """SVG QR code pointing at the public tracking page."""
    shipment = await _get_shipment(db, shipment_id)
    ensure_own_client(user, "shipments", shipment.client_id)

    url = f"{settings.frontend_url}/track/{shipment.tracking_number}"
    qr = segno.make(url)
    buf = io.BytesIO()
    qr.save(buf, kind="svg", scale=4, dark="#1e3a8a", title=shipment.tracking_number)
    return Response(content=buf.getvalue(), media_type="image/svg+xml")


# ── POST /api/shipments/ ─────────────────────────────────────

@router.post("/", response_model=ShipmentOut, status_code=201)
async def create_shipment(
    body: ShipmentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("shipments:write")),
):
    client = await db.get(Client, body.client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    supplier = None
    if body.supplier_id:
        supplier = await db.get(Supplier, body.supplier_id)
        if not supplier:
            raise HTTPException(status_code=404, detail="Supplier not found")

    shipment = Shipment(
        shipment_code=await generate_code(db, "shipment"),
        tracking_number=await generate_code(db, "tracking"),
        created_by=user.id,
        **body.model_dump(),
    )
    if shipment.booking_date is None:
        shipment.booking_date = date.today()
    shipment.client = client
    shipment.supplier = supplier
    db.add(shipment)
    await db.flush()

    if body.container_id:
        await _reserve_container(db, body.container_id, shipment)
        await db.flush()

    await log_activity(
        db, user, action="created", entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=(
            f"Created shipment {shipment.shipment_code} for {client.company_name} "
            f"({shipment.origin_port} → {shipment.destination_port})"
        ),
    )
    await invalidate_cache("dashboard:*")
    return ShipmentOut.model_validate(shipment)


# ── PUT /api/shipments/{id} ──────────────────────────────────

@router.put("/{shipment_id}", response_model=ShipmentOut)
async def update_shipment(
    shipment_id: str,
    body: ShipmentUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("shipments:write")),
):
    shipment = await _get_shipment(db, shipment_id)
    if shipment.is_final:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot update a {shipment.status} shipment",
        )

    updates = body.model_dump(exclude_unset=True)
    old_status = shipment.status

    if "supplier_id" in updates and updates["supplier_id"] != shipment.supplier_id:
        supplier = None
        if updates["supplier_id"]:
            supplier = await db.get(Supplier, updates["supplier_id"])
            if not supplier:
                raise HTTPException(status_code=404, detail="Supplier not found")
        shipment.supplier = supplier

    new_container = updates.pop("container_id", shipment.container_id)
    if new_container != shipment.container_id:
        await release_container(db, shipment)
        if new_container:
            await _reserve_container(db, new_container, shipment)
        shipment.container_id = new_container

    for key, value in updates.items():
        setattr(shipment, key, value)

    if shipment.status == "delivered":
        if shipment.actual_arrival is None:
            shipment.actual_arrival = date.today()
        await release_container(db, shipment)
    elif shipment.status == "cancelled":
        await release_container(db, shipment)
    await db.flush()

    await log_activity(
        db, user,
        action="status_changed" if shipment.status != old_status else "updated",
        entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=(
            f"Shipment {shipment.shipment_code}: {old_status} → {shipment.status}"
            if shipment.status != old_status
            else f"Updated shipment {shipment.shipment_code}"
        ),
    )
    await invalidate_cache("dashboard:*")
    return ShipmentOut.model_validate(shipment)


@router.put("/{shipment_id}/cancel", response_model=ShipmentOut)
async def cancel_shipment(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("shipments:write")),
):
    shipment = await _get_shipment(db, shipment_id)
    if shipment.status == "delivered":
        raise HTTPException(status_code=400, detail="Cannot cancel delivered shipment")
    if shipment.status == "cancelled":
        raise HTTPException(status_code=400, detail="Shipment is already cancelled")

    shipment.status = "cancelled"
    await release_container(db, shipment)
    await db.flush()

    await log_activity(
        db, user, action="cancelled", entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=f"Cancelled shipment {shipment.shipment_code}",
    )
    await invalidate_cache("dashboard:*")
    return ShipmentOut.model_validate(shipment)


# ── DELETE /api/shipments/{id} ───────────────────────────────

@router.delete("/{shipment_id}", status_code=204)
async def delete_shipment(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("shipments:write")),
):
    shipment = await _get_shipment(db, shipment_id)

    invoice_count = (await db.execute(
        select(func.count()).select_from(Invoice).where(Invoice.shipment_id == shipment_id)
    )).scalar() or 0
    if invoice_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete shipment with {invoice_count} invoice(s)",
        )

    await release_container(db, shipment)
    await log_activity(
        db, user, action="deleted", entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=f"Deleted shipment {shipment.shipment_code}",
    )
    await db.delete(shipment)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return Response(status_code=204)

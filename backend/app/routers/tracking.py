"""Tracking router — shipment milestones and the public tracking page.

Endpoints:
    GET    /api/tracking/public/{tracking_number}  Public page (no auth)
    GET    /api/tracking/active-shipments          Open shipments + latest update
    GET    /api/tracking/all                       Latest updates across shipments
    GET    /api/tracking/shipment/{shipment_id}    Every update for one shipment
    POST   /api/tracking/                          Add an update (moves shipment status)
    PUT    /api/tracking/{id}                      Edit an update
    DELETE /api/tracking/{id}                      Remove an update
"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import (
    ensure_own_client,
    own_client_scope,
    require_any_permission,
    require_permission,
)
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.shipment import FINAL_STATUSES, Shipment
from app.models.tracking_update import SHIPMENT_STATUS_FOR, TrackingUpdate
from app.models.user import User
from app.routers.shipments import release_container
from app.schemas.tracking import (
    ActiveShipmentItem,
    PublicShipmentSummary,
    PublicTrackingResponse,
    TrackingFeedItem,
    TrackingUpdateCreate,
    TrackingUpdateEdit,
    TrackingUpdateOut,
)
from app.services.email import EmailDeliveryError, send_email, tracking_update_email
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache

logger = logging.getLogger(__name__)

router = APIRouter()

_read = require_any_permission("tracking:read", "tracking:read:own")


# ── Helpers ──────────────────────────────────────────────────

async def _apply_status(db: AsyncSession, shipment: Shipment, tracking_status: str) -> None:
    """Move the shipment to the status implied by a tracking milestone."""
    new_status = SHIPMENT_STATUS_FOR[tracking_status]
    if shipment.status == new_status:
        return
    shipment.status = new_status
    if new_status == "delivered":
        if shipment.actual_arrival is None:
            shipment.actual_arrival = date.today()
        await release_container(db, shipment)


async def _notify_client(db: AsyncSession, shipment: Shipment, update: TrackingUpdate) -> None:
    client = await db.get(Client, shipment.client_id)
    if not client or not client.contact_email:
        return
    subject, body = tracking_update_email(
        client.contact_name, shipment.tracking_number, update.status, update.description
    )
    try:
        await send_email(client.contact_email, subject, body)
    except EmailDeliveryError:
        logger.warning(
            "Tracking notification for %s to %s failed",
            shipment.tracking_number, client.contact_email,
        )


async def _get_update(db: AsyncSession, update_id: str) -> TrackingUpdate:
    update = await db.get(TrackingUpdate, update_id)
    if not update:
        raise ResourceNotFoundError("Tracking update")
    return update


# ── Public ───────────────────────────────────────────────────

@router.get("/public/{tracking_number}", response_model=PublicTrackingResponse)
async def public_tracking(
    tracking_number: str,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Shipment).where(Shipment.tracking_number == tracking_number.upper())
    )
    shipment = result.unique().scalar_one_or_none()
    if not shipment:
        raise HTTPException(status_code=404, detail="Tracking number not found")

    updates = (await db.execute(
        select(TrackingUpdate)
        .where(TrackingUpdate.shipment_id == shipment.id, TrackingUpdate.is_public.is_(True))
        .order_by(TrackingUpdate.timestamp.desc())
    )).scalars().all()

    return PublicTrackingResponse(
        shipment=PublicShipmentSummary.model_validate(shipment),
        updates=[TrackingUpdateOut.model_validate(u) for u in updates],
    )


# ── Back-office / portal reads ───────────────────────────────

@router.get("/active-shipments", response_model=list[ActiveShipmentItem])
async def active_shipments(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    stmt = select(Shipment).where(Shipment.status.notin_(FINAL_STATUSES))
    scope = own_client_scope(user, "tracking")
    if scope is not None:
        stmt = stmt.where(Shipment.client_id == scope)
    shipments = (await db.execute(
        stmt.order_by(Shipment.updated_at.desc()).limit(50)
    )).unique().scalars().all()

    items = []
    for s in shipments:
        latest = (await db.execute(
            select(TrackingUpdate)
            .where(TrackingUpdate.shipment_id == s.id)
            .order_by(TrackingUpdate.timestamp.desc())
            .limit(1)
        )).scalar_one_or_none()
        items.append(ActiveShipmentItem(
            id=s.id,
            shipment_code=s.shipment_code,
            tracking_number=s.tracking_number,
            client_id=s.client_id,
            client_name=s.client_name,
            origin_port=s.origin_port,
            destination_port=s.destination_port,
            status=s.status,
            estimated_arrival=s.estimated_arrival,
            last_update=TrackingUpdateOut.model_validate(latest) if latest else None,
        ))
    return items


@router.get("/all", response_model=list[TrackingFeedItem])
async def all_updates(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    stmt = (
        select(TrackingUpdate, Shipment.shipment_code, Shipment.tracking_number)
        .join(Shipment, Shipment.id == TrackingUpdate.shipment_id)
    )
    scope = own_client_scope(user, "tracking")
    if scope is not None:
        stmt = stmt.where(Shipment.client_id == scope)
    rows = (await db.execute(
        stmt.order_by(TrackingUpdate.timestamp.desc()).limit(limit)
    )).all()

    return [
        TrackingFeedItem(
            **TrackingUpdateOut.model_validate(update).model_dump(),
            shipment_code=code,
            tracking_number=number,
        )
        for update, code, number in rows
    ]


@router.get("/shipment/{shipment_id}", response_model=list[TrackingUpdateOut])
async def shipment_updates(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    shipment = await db.get(Shipment, shipment_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    ensure_own_client(user, "tracking", shipment.client_id)

    stmt = select(TrackingUpdate).where(TrackingUpdate.shipment_id == shipment_id)
    if own_client_scope(user, "tracking") is not None:
        stmt = stmt.where(TrackingUpdate.is_public.is_(True))
    updates = (await db.execute(stmt.order_by(TrackingUpdate.timestamp.desc()))).scalars().all()
    return [TrackingUpdateOut.model_validate(u) for u in updates]


# ── Writes ───────────────────────────────────────────────────

@router.post("/", response_model=TrackingUpdateOut, status_code=201)
async def create_update(
    body: TrackingUpdateCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tracking:write")),
):
    shipment = await db.get(Shipment, body.shipment_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    if shipment.status == "cancelled":
        raise HTTPException(
            status_code=400,
            detail="Cannot add tracking updates to a cancelled shipment",
        )

    data = body.model_dump(exclude={"notify_client"})
    if data["timestamp"] is None:
        data["timestamp"] = datetime.utcnow()
    update = TrackingUpdate(
        **data,
        created_by=user.id,
        created_by_name=user.full_name,
    )
    db.add(update)
    await _apply_status(db, shipment, body.status)
    await db.flush()

    await log_activity(
        db, user, action="tracking_added", entity_type="shipment",
        entity_id=shipment.id, entity_code=shipment.shipment_code,
        summary=f"{shipment.tracking_number}: {body.status.replace('_', ' ')}",
    )

    if body.notify_client:
        await _notify_client(db, shipment, update)

    await invalidate_cache("dashboard:*")
    return TrackingUpdateOut.model_validate(update)


@router.put("/{update_id}", response_model=TrackingUpdateOut)
async def edit_update(
    update_id: str,
    body: TrackingUpdateEdit,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tracking:write")),
):
    update = await _get_update(db, update_id)
    changes = body.model_dump(exclude_unset=True)
    status_changed = "status" in changes and changes["status"] != update.status

    for key, value in changes.items():
        if value is not None:
            setattr(update, key, value)

    if status_changed:
        shipment = await db.get(Shipment, update.shipment_id)
        if shipment and shipment.status != "cancelled":
            await _apply_status(db, shipment, update.status)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return TrackingUpdateOut.model_validate(update)


@router.delete("/{update_id}", status_code=204)
async def delete_update(
    update_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("tracking:write")),
):
    update = await _get_update(db, update_id)
    await db.delete(update)
    await db.flush()
    return Response(status_code=204)

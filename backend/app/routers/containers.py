"""Container fleet router.

Endpoints:
    GET    /api/containers/                 List (filters + search)
    GET    /api/containers/stats            Fleet counts and breakdowns
    GET    /api/containers/available        Available containers (optional type)
    GET    /api/containers/available/list   Available containers for pickers
    GET    /api/containers/{id}             Detail
    POST   /api/containers/                 Create
    PUT    /api/containers/{id}             Update
    DELETE /api/containers/{id}             Delete (refused while in use)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_any_permission, require_permission
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.container import Container
from app.models.shipment import Shipment
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.container import (
    ContainerCreate,
    ContainerOut,
    ContainerPickerItem,
    ContainerStats,
    ContainerUpdate,
)
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache
from app.utils.numbering import generate_code

router = APIRouter()


async def _get_container(db: AsyncSession, container_id: str) -> Container:
    container = await db.get(Container, container_id)
    if not container:
        raise ResourceNotFoundError("Container")
    return container


async def _number_taken(db: AsyncSession, number: str, exclude_id: str | None = None) -> bool:
    query = select(Container.id).where(Container.container_number == number)
    if exclude_id:
        query = query.where(Container.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def _available(db: AsyncSession, container_type: str | None = None) -> list[Container]:
    query = select(Container).where(Container.status == "available")
    if container_type:
        query = query.where(Container.type == container_type)
    result = await db.execute(query.order_by(Container.container_number))
    return list(result.scalars().all())


# ── GET /api/containers/ ─────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[ContainerOut])
async def list_containers(
    status: str | None = None,
    type: str | None = None,
    condition: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("containers:read")),
):
    base = select(Container)
    if status:
        base = base.where(Container.status == status)
    if type:
        base = base.where(Container.type == type)
    if condition:
        base = base.where(Container.condition == condition)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Container.container_code.ilike(term),
            Container.container_number.ilike(term),
            Container.location.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Container.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[ContainerOut.model_validate(c) for c in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=ContainerStats)
async def container_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("containers:read")),
):
    by_status = dict((await db.execute(
        select(Container.status, func.count()).group_by(Container.status)
    )).all())
    by_type = dict((await db.execute(
        select(Container.type, func.count()).group_by(Container.type)
    )).all())
    by_condition = dict((await db.execute(
        select(Container.condition, func.count()).group_by(Container.condition)
    )).all())

    return ContainerStats(
        total=sum(by_status.values()),
        available=by_status.get("available", 0),
        in_use=by_status.get("in_use", 0),
        maintenance=by_status.get("maintenance", 0),
        damaged=by_status.get("damaged", 0),
        type_breakdown=by_type,
        condition_breakdown=by_condition,
    )


@router.get("/available", response_model=list[ContainerOut])
async def available_containers(
    container_type: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("containers:read")),
):
    return [ContainerOut.model_validate(c) for c in await _available(db, container_type)]


@router.get("/available/list", response_model=list[ContainerPickerItem])
async def available_container_picker(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_any_permission("containers:read", "shipments:write")),
):
    return [ContainerPickerItem.model_validate(c) for c in await _available(db)]


@router.get("/{container_id}", response_model=ContainerOut)
async def get_container(
    container_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("containers:read")),
):
    return ContainerOut.model_validate(await _get_container(db, container_id))


# ── POST /api/containers/ ────────────────────────────────────

@router.post("/", response_model=ContainerOut, status_code=201)
async def create_container(
    body: ContainerCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("containers:write")),
):
    if await _number_taken(db, body.container_number):
        raise HTTPException(status_code=400, detail="Container number already exists")

    container = Container(
        container_code=await generate_code(db, "container"),
        **body.model_dump(),
    )
    db.add(container)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="container",
        entity_id=container.id, entity_code=container.container_number,
        summary=f"Registered {container.type} container {container.container_number}",
    )
    await invalidate_cache("dashboard:*")
    return ContainerOut.model_validate(container)


# ── PUT /api/containers/{id} ─────────────────────────────────

@router.put("/{container_id}", response_model=ContainerOut)
async def update_container(
    container_id: str,
    body: ContainerUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("containers:write")),
):
    container = await _get_container(db, container_id)
    updates = body.model_dump(exclude_unset=True)

    number = updates.get("container_number")
    if number and await _number_taken(db, number, exclude_id=container.id):
        raise HTTPException(status_code=400, detail="Container number already exists")

    for key, value in updates.items():
        setattr(container, key, value)
    await db.flush()

    await log_activity(
        db, user, action="updated", entity_type="container",
        entity_id=container.id, entity_code=container.container_number,
        summary=f"Updated container {container.container_number}",
    )
    await invalidate_cache("dashboard:*")
    return ContainerOut.model_validate(container)


# ── DELETE /api/containers/{id} ──────────────────────────────

@router.delete("/{container_id}", status_code=204)
async def delete_container(
    container_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("containers:write")),
):
    container = await _get_container(db, container_id)
    if container.status == "in_use":
        raise HTTPException(status_code=400, detail="Cannot delete a container that is in use")

    linked = (await db.execute(
        select(func.count()).select_from(Shipment).where(Shipment.container_id == container_id)
    )).scalar() or 0
    if linked:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete container linked to {linked} shipment(s)",
        )

    await log_activity(
        db, user, action="deleted", entity_type="container",
        entity_id=container.id, entity_code=container.container_number,
        summary=f"Deleted container {container.container_number}",
    )
    await db.delete(container)
    await db.flush()
    await invalidate_cache("dashboard:*")
    return Response(status_code=204)

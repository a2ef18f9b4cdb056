"""Supplier management router.

Endpoints:
    GET    /api/suppliers/                          List (filters + search)
    GET    /api/suppliers/by-service/{service_type} Active suppliers for a service
    GET    /api/suppliers/{id}                      Detail
    POST   /api/suppliers/                          Create
    PUT    /api/suppliers/{id}                      Update
    DELETE /api/suppliers/{id}                      Delete (refused while referenced)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.shipment import Shipment
from app.models.supplier import Supplier
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.supplier import SERVICE_TYPES, SupplierCreate, SupplierOut, SupplierUpdate
from app.utils.activity import log_activity
from app.utils.numbering import generate_code

router = APIRouter()


async def _get_supplier(db: AsyncSession, supplier_id: str) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier:
        raise ResourceNotFoundError("Supplier")
    return supplier


async def _email_taken(db: AsyncSession, email: str, exclude_id: str | None = None) -> bool:
    query = select(Supplier.id).where(func.lower(Supplier.contact_email) == email.lower())
    if exclude_id:
        query = query.where(Supplier.id != exclude_id)
    return (await db.execute(query)).first() is not None


def _offers(supplier: Supplier, service_type: str) -> bool:
    return service_type in (supplier.service_types or [])


@router.get("/", response_model=PaginatedResponse[SupplierOut])
async def list_suppliers(
    status: str | None = None,
    service_type: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("suppliers:read")),
):
    base = select(Supplier)
    if status:
        base = base.where(Supplier.status == status)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Supplier.supplier_code.ilike(term),
            Supplier.name.ilike(term),
            Supplier.trading_name.ilike(term),
            Supplier.contact_email.ilike(term),
        ))
    base = base.order_by(Supplier.created_at.desc())

    if service_type:
        # service_types is a JSON list; filter in Python to stay portable
        rows = [s for s in (await db.execute(base)).scalars().all() if _offers(s, service_type)]
        page = rows[offset:offset + limit]
        total = len(rows)
    else:
        total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
        page = (await db.execute(base.limit(limit).offset(offset))).scalars().all()

    return PaginatedResponse(
        items=[SupplierOut.model_validate(s) for s in page],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/by-service/{service_type}", response_model=list[SupplierOut])
async def suppliers_by_service(
    service_type: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("suppliers:read")),
):
    if service_type not in SERVICE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid service type")
    result = await db.execute(
        select(Supplier).where(Supplier.status == "active").order_by(Supplier.name)
    )
    return [
        SupplierOut.model_validate(s)
        for s in result.scalars().all()
        if _offers(s, service_type)
    ]


@router.get("/{supplier_id}", response_model=SupplierOut)
async def get_supplier(
    supplier_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("suppliers:read")),
):
    return SupplierOut.model_validate(await _get_supplier(db, supplier_id))


@router.post("/", response_model=SupplierOut, status_code=201)
async def create_supplier(
    body: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("suppliers:write")),
):
    if await _email_taken(db, body.contact_email):
        raise HTTPException(status_code=400, detail="Supplier with this email already exists")

    supplier = Supplier(
        supplier_code=await generate_code(db, "supplier"),
        **body.model_dump(),
    )
    supplier.contact_email = supplier.contact_email.lower()
    supplier.active_contracts = sum(
        1 for c in supplier.contracts or [] if c.get("status") == "active"
    )
    db.add(supplier)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="supplier",
        entity_id=supplier.id, entity_code=supplier.supplier_code,
        summary=f"Added supplier {supplier.name}",
    )
    return SupplierOut.model_validate(supplier)


@router.put("/{supplier_id}", response_model=SupplierOut)
async def update_supplier(
    supplier_id: str,
    body: SupplierUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("suppliers:write")),
):
    supplier = await _get_supplier(db, supplier_id)
    updates = body.model_dump(exclude_unset=True)

    email = updates.get("contact_email")
    if email:
        updates["contact_email"] = email.lower()
        if await _email_taken(db, email, exclude_id=supplier.id):
            raise HTTPException(status_code=400, detail="Supplier with this email already exists")

    for key, value in updates.items():
        setattr(supplier, key, value)
    if "contracts" in updates and "active_contracts" not in updates:
        supplier.active_contracts = sum(
            1 for c in supplier.contracts or [] if c.get("status") == "active"
        )
    await db.flush()

    await log_activity(
        db, user, action="updated", entity_type="supplier",
        entity_id=supplier.id, entity_code=supplier.supplier_code,
        summary=f"Updated supplier {supplier.name}",
    )
    return SupplierOut.model_validate(supplier)


@router.delete("/{supplier_id}", status_code=204)
async def delete_supplier(
    supplier_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("suppliers:write")),
):
    supplier = await _get_supplier(db, supplier_id)

    shipment_count = (await db.execute(
        select(func.count()).select_from(Shipment).where(Shipment.supplier_id == supplier_id)
    )).scalar() or 0
    if shipment_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete supplier with {shipment_count} shipment(s)",
        )

    await log_activity(
        db, user, action="deleted", entity_type="supplier",
        entity_id=supplier.id, entity_code=supplier.supplier_code,
        summary=f"Deleted supplier {supplier.name}",
    )
    await db.delete(supplier)
    await db.flush()
    return Response(status_code=204)

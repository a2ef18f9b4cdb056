"""Invoice router.

Endpoints:
    GET  /api/invoices/                               List (own-scope aware)
    GET  /api/invoices/stats                          Counts + amounts
    GET  /api/invoices/shipment/{shipment_id}/preview Invoice preview for a shipment
    GET  /api/invoices/shipment/{shipment_id}/pdf     Same, rendered as PDF
    GET  /api/invoices/{id}                           Detail
    POST /api/invoices/                               Create
    PUT  /api/invoices/{id}                           Update (not paid / cancelled)
    PUT  /api/invoices/{id}/pay                       Mark paid
    PUT  /api/invoices/{id}/cancel                    Cancel
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import (
    ensure_own_client,
    own_client_scope,
    require_any_permission,
    require_permission,
    user_can,
)
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client
from app.models.invoice import Invoice
from app.models.setting import COMPANY_INFO
from app.models.shipment import Shipment
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceOut,
    InvoicePayRequest,
    InvoicePreview,
    InvoiceStats,
    InvoiceUpdate,
)
from app.services.app_settings import get_setting_value
from app.services.invoice_pdf import build_shipment_preview, render_invoice_pdf
from app.services.stats import invoice_stats
from app.utils.activity import log_activity
from app.utils.cache import invalidate_cache
from app.utils.numbering import generate_code

logger = logging.getLogger(__name__)

router = APIRouter()

_read = require_any_permission("invoices:read", "invoices:read:own")
_preview = require_any_permission("invoices:read", "invoices:read:own", "shipments:read")


# ── Helpers ──────────────────────────────────────────────────

async def _get_invoice(db: AsyncSession, invoice_id: str) -> Invoice:
    invoice = await db.get(Invoice, invoice_id)
    if not invoice:
        raise ResourceNotFoundError("Invoice")
    return invoice


def _totals(items: list[dict], tax: float) -> tuple[float, float]:
    subtotal = round(sum(item["amount"] for item in items), 2)
    return subtotal, round(subtotal + tax, 2)


async def _preview_shipment(db: AsyncSession, user: User, shipment_id: str) -> dict:
    shipment = await db.get(Shipment, shipment_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    if not user_can(user, "shipments:read"):
        ensure_own_client(user, "invoices", shipment.client_id)
    client = await db.get(Client, shipment.client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return await build_shipment_preview(db, shipment, client)


# ── GET /api/invoices/ ───────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[InvoiceOut])
async def list_invoices(
    status: str | None = None,
    client_id: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    base = select(Invoice)
    scope = own_client_scope(user, "invoices")
    if scope is not None:
        base = base.where(Invoice.client_id == scope)
    elif client_id:
        base = base.where(Invoice.client_id == client_id)
    if status:
        base = base.where(Invoice.status == status)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            Invoice.invoice_number.ilike(term),
            Invoice.invoice_code.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Invoice.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[InvoiceOut.model_validate(i) for i in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=InvoiceStats)
async def get_invoice_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    return await invoice_stats(db, own_client_scope(user, "invoices"))


@router.get("/shipment/{shipment_id}/preview", response_model=InvoicePreview)
async def preview_shipment_invoice(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_preview),
):
    return await _preview_shipment(db, user, shipment_id)


@router.get("/shipment/{shipment_id}/pdf")
async def shipment_invoice_pdf(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_preview),
):
    preview = await _preview_shipment(db, user, shipment_id)
    company = await get_setting_value(db, COMPANY_INFO)
    pdf = render_invoice_pdf(preview, company)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="invoice-{preview["invoice_number"]}.pdf"'
        },
    )


@router.get("/{invoice_id}", response_model=InvoiceOut)
async def get_invoice(
    invoice_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_read),
):
    invoice = await _get_invoice(db, invoice_id)
    ensure_own_client(user, "invoices", invoice.client_id)
    return InvoiceOut.model_validate(invoice)


# ── POST /api/invoices/ ──────────────────────────────────────

@router.post("/", response_model=InvoiceOut, status_code=201)
async def create_invoice(
    body: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("invoices:write")),
):
    client = await db.get(Client, body.client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    if body.shipment_id:
        shipment = await db.get(Shipment, body.shipment_id)
        if not shipment:
            raise HTTPException(status_code=404, detail="Shipment not found")
        if shipment.client_id != client.id:
            raise HTTPException(status_code=400, detail="Shipment does not belong to this client")

    items = [item.model_dump() for item in body.items]
    subtotal, total = _totals(items, body.tax)

    invoice = Invoice(
        invoice_code=await generate_code(db, "invoice"),
        invoice_number=await generate_code(db, "invoice_no"),
        client_id=client.id,
        shipment_id=body.shipment_id,
        issue_date=body.issue_date or date.today(),
        due_date=body.due_date,
        status=body.status,
        items=items,
        subtotal=subtotal,
        tax=body.tax,
        total=total,
        currency=body.currency,
        notes=body.notes,
        created_by=user.id,
    )
    invoice.client = client
    db.add(invoice)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="invoice",
        entity_id=invoice.id, entity_code=invoice.invoice_number,
        summary=f"Invoice {invoice.invoice_number} for {client.company_name}: {total:,.2f} {invoice.currency}",
    )
    await invalidate_cache("dashboard:*")
    return InvoiceOut.model_validate(invoice)


# ── PUT /api/invoices/{id} ───────────────────────────────────

@router.put("/{invoice_id}", response_model=InvoiceOut)
async def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("invoices:write")),
):
    invoice = await _get_invoice(db, invoice_id)
    if invoice.status in ("paid", "cancelled"):
        raise HTTPException(status_code=400, detail=f"Cannot update a {invoice.status} invoice")

    updates = body.model_dump(exclude_unset=True, exclude={"items"})
    for key, value in updates.items():
        if value is not None:
            setattr(invoice, key, value)

    if invoice.due_date < invoice.issue_date:
        raise HTTPException(status_code=400, detail="Due date cannot be before issue date")

    if body.items is not None:
        invoice.items = [item.model_dump() for item in body.items]
    invoice.subtotal, invoice.total = _totals(invoice.items, invoice.tax)
    await db.flush()

    await log_activity(
        db, user, action="updated", entity_type="invoice",
        entity_id=invoice.id, entity_code=invoice.invoice_number,
        summary=f"Updated invoice {invoice.invoice_number}",
    )
    await invalidate_cache("dashboard:*")
    return InvoiceOut.model_validate(invoice)


@router.put("/{invoice_id}/pay", response_model=InvoiceOut)
async def pay_invoice(
    invoice_id: str,
    body: InvoicePayRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("invoices:write")),
):
    invoice = await _get_invoice(db, invoice_id)
    if invoice.status == "paid":
        raise HTTPException(status_code=400, detail="Invoice is already paid")
    if invoice.status == "cancelled":
        raise HTTPException(status_code=400, detail="Cannot pay a cancelled invoice")

    invoice.status = "paid"
    invoice.paid_date = body.paid_date or date.today()
    if body.payment_method:
        invoice.payment_method = body.payment_method
    await db.flush()

    await log_activity(
        db, user, action="paid", entity_type="invoice",
        entity_id=invoice.id, entity_code=invoice.invoice_number,
        summary=f"Invoice {invoice.invoice_number} marked paid",
    )
    await invalidate_cache("dashboard:*")
    return InvoiceOut.model_validate(invoice)


@router.put("/{invoice_id}/cancel", response_model=InvoiceOut)
async def cancel_invoice(
    invoice_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("invoices:write")),
):
    invoice = await _get_invoice(db, invoice_id)
    if invoice.status == "paid":
        raise HTTPException(status_code=400, detail="Cannot cancel a paid invoice")
    if invoice.status == "cancelled":
        raise HTTPException(status_code=400, detail="Invoice is already cancelled")

    invoice.status = "cancelled"
    await db.flush()

    await log_activity(
        db, user, action="cancelled", entity_type="invoice",
        entity_id=invoice.id, entity_code=invoice.invoice_number,
        summary=f"Cancelled invoice {invoice.invoice_number}",
    )
    await invalidate_cache("dashboard:*")
    return InvoiceOut.model_validate(invoice)

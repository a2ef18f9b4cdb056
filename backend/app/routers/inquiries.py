"""Public contact form.

Endpoints:
    POST /api/inquiries/        Submit an inquiry (no auth)
    GET  /api/inquiries/stats   Totals by status (settings:read)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.config import settings
from app.database import get_db
from app.models.inquiry import Inquiry
from app.models.user import User
from app.schemas.inquiry import InquiryCreate, InquiryReceipt
from app.services import email as mailer
from app.utils.numbering import generate_code

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=InquiryReceipt, status_code=201)
async def submit_inquiry(body: InquiryCreate, db: AsyncSession = Depends(get_db)):
    inquiry = Inquiry(reference=await generate_code(db, "inquiry"), **body.model_dump())
    db.add(inquiry)
    await db.flush()

    text = "\n".join([
        f"Reference: {inquiry.reference}",
        f"From: {inquiry.name} <{inquiry.email}>",
        f"Phone: {inquiry.phone or '-'}",
        f"Company: {inquiry.company or '-'}",
        f"Service: {inquiry.service_type or '-'}",
        "",
        inquiry.message,
    ])
    try:
        await mailer.send_email(
            settings.sales_inbox,
            f"New inquiry {inquiry.reference}: {inquiry.subject or 'General'}",
            text,
        )
    except mailer.EmailDeliveryError:
        logger.warning("Could not notify sales inbox about %s", inquiry.reference)

    return InquiryReceipt(
        reference=inquiry.reference,
        message="Thank you for your inquiry. Our team will contact you shortly.",
    )


@router.get("/stats")
async def inquiry_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("settings:read")),
):
    by_status = dict((await db.execute(
        select(Inquiry.status, func.count()).group_by(Inquiry.status)
    )).all())
    return {
        "total": sum(by_status.values()),
        "by_status": {s: by_status.get(s, 0) for s in ("new", "contacted", "closed")},
    }

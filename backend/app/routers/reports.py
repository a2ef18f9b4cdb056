"""Reports router.

Endpoints:
    GET    /api/reports/              List (type, format, status filters)
    GET    /api/reports/stats         Completed count, this month, storage used
    POST   /api/reports/generate      Build a report file (pdf / excel / csv)
    POST   /api/reports/configure     Formats + filter descriptors for a type
    GET    /api/reports/{id}          Detail
    GET    /api/reports/{id}/download Stream the file
    POST   /api/reports/{id}/email    Email the file as an attachment
    DELETE /api/reports/{id}          Delete record + file (owner or super_admin)
"""

import logging
from datetime import date, datetime
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission
from app.database import get_db
from app.middleware.exceptions import (
    PermissionDeniedError,
    ResourceNotFoundError,
    create_error_response,
)
from app.models.report import REPORT_FORMATS, REPORT_TYPES, Report
from app.models.setting import COMPANY_INFO
from app.models.user import User
from app.schemas.common import MessageResponse, PaginatedResponse
from app.schemas.report import (
    ReportConfigureRequest,
    ReportEmailRequest,
    ReportGenerateRequest,
    ReportOut,
    ReportStats,
)
from app.services import email as mailer
from app.services.app_settings import get_setting_value
from app.services.reports import (
    CONTENT_TYPES,
    default_report_name,
    download_filename,
    generate_report_file,
    report_configuration,
    storage_size,
)
from app.utils.activity import log_activity
from app.utils.numbering import generate_code

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _get_report(db: AsyncSession, report_id: str, user: User) -> Report:
    report = await db.get(Report, report_id)
    if not report:
        raise ResourceNotFoundError("Report")
    if user.user_type == "client" and report.generated_by != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return report


def _existing_file(report: Report) -> Path:
    path = Path(report.file_path) if report.file_path else None
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Report file not found")
    return path


# ── List / stats ─────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[ReportOut])
async def list_reports(
    type: str | None = None,
    format: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:read")),
):
    base = select(Report)
    if user.user_type == "client":
        base = base.where(Report.generated_by == user.id)
    if type:
        base = base.where(Report.type == type)
    if format:
        base = base.where(Report.format == format)
    if status:
        base = base.where(Report.status == status)
    if search:
        base = base.where(Report.name.ilike(f"%{search}%"))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(Report.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[ReportOut.model_validate(r) for r in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=ReportStats)
async def report_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("reports:read")),
):
    month_start = datetime.combine(date.today().replace(day=1), datetime.min.time())
    completed = Report.status == "completed"

    total = (await db.execute(
        select(func.count()).select_from(Report).where(completed)
    )).scalar() or 0
    this_month = (await db.execute(
        select(func.count()).select_from(Report).where(completed, Report.created_at >= month_start)
    )).scalar() or 0
    used = (await db.execute(
        select(func.coalesce(func.sum(Report.file_size_bytes), 0))
    )).scalar() or 0

    return ReportStats(
        total_reports=total,
        this_month=this_month,
        scheduled_reports=0,
        storage_used=storage_size(used),
        storage_used_bytes=used,
    )


# ── Generate / configure ─────────────────────────────────────

@router.post("/generate", response_model=ReportOut, status_code=201)
async def generate_report(
    body: ReportGenerateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:write")),
):
    if body.type not in REPORT_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid report type: {body.type}")
    if body.format not in REPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Invalid report format: {body.format}")
    if body.start_date is None or body.end_date is None:
        raise HTTPException(status_code=400, detail="Both start_date and end_date are required")
    if body.start_date > body.end_date:
        raise HTTPException(status_code=400, detail="Start date must be before or equal to end date")

    report = Report(
        report_code=await generate_code(db, "report"),
        name=body.name or default_report_name(body.type),
        type=body.type,
        format=body.format,
        start_date=body.start_date,
        end_date=body.end_date,
        filters=body.filters,
        status="generating",
        generated_by=user.id,
    )
    db.add(report)
    await db.flush()

    company = (await get_setting_value(db, COMPANY_INFO, {})).get("company_name") or "CargoFlow"
    try:
        await generate_report_file(db, report, company)
    except Exception as e:
        logger.exception("Report %s failed", report.report_code)
        report.status = "failed"
        report.error_message = str(e)
        await db.commit()
        return create_error_response(
            status_code=500,
            message=f"Failed to generate report: {e}",
            error_code="REPORT_FAILED",
        )

    await db.flush()
    await log_activity(
        db, user, action="generated", entity_type="report",
        entity_id=report.id, entity_code=report.report_code,
        summary=f"Generated {report.name} ({report.format})",
    )
    return ReportOut.model_validate(report)


@router.post("/configure")
async def configure_report(
    body: ReportConfigureRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("reports:read")),
):
    if body.type not in REPORT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid report type")
    return {"type": body.type, "configuration": await report_configuration(db, body.type)}


# ── Single report ────────────────────────────────────────────

@router.get("/{report_id}", response_model=ReportOut)
async def get_report(
    report_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:read")),
):
    return ReportOut.model_validate(await _get_report(db, report_id, user))


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:read")),
):
    report = await _get_report(db, report_id, user)
    if report.status != "completed":
        raise HTTPException(status_code=400, detail="Report is not ready for download")
    path = _existing_file(report)

    report.download_count = (report.download_count or 0) + 1
    await db.flush()

    extension = path.suffix.lstrip(".")
    return FileResponse(
        path,
        media_type=CONTENT_TYPES.get(extension, "application/octet-stream"),
        filename=download_filename(report.name, extension),
    )


@router.post("/{report_id}/email", response_model=MessageResponse)
async def email_report(
    report_id: str,
    body: ReportEmailRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:read")),
):
    report = await _get_report(db, report_id, user)
    if not body.recipients:
        raise HTTPException(status_code=400, detail="At least one recipient is required")
    if report.status != "completed":
        raise HTTPException(status_code=400, detail="Report is not ready to be sent")
    path = _existing_file(report)
    if not mailer.email_configured():
        raise HTTPException(
            status_code=503,
            detail="Email service not configured. Please configure SMTP settings.",
        )

    recipients = [str(r) for r in body.recipients]
    text = (
        f"Please find attached the report \"{report.name}\" "
        f"({report.start_date.isoformat()} to {report.end_date.isoformat()}).\n\n"
        f"{body.message or ''}\n\nSent by {user.full_name} via CargoFlow."
    )
    try:
        await mailer.send_email(recipients, f"Report: {report.name}", text, attachments=[str(path)])
    except mailer.EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=f"Failed to send email: {e}")

    await log_activity(
        db, user, action="emailed", entity_type="report",
        entity_id=report.id, entity_code=report.report_code,
        summary=f"Emailed {report.name} to {', '.join(recipients)}",
    )
    return MessageResponse(message=f"Report sent to {len(recipients)} recipient(s)")


@router.delete("/{report_id}", status_code=204)
async def delete_report(
    report_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reports:read")),
):
    report = await db.get(Report, report_id)
    if not report:
        raise ResourceNotFoundError("Report")
    is_super_admin = user.role is not None and user.role.name == "super_admin"
    if report.generated_by != user.id and not is_super_admin:
        raise PermissionDeniedError("Only the owner can delete this report")

    if report.file_path:
        Path(report.file_path).unlink(missing_ok=True)
    await db.delete(report)
    await db.flush()
    return Response(status_code=204)

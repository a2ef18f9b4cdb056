"""Report generation: data builders and file writers.

A builder queries one slice of the business (shipments, financials, ...)
for a date window and returns rows plus summary metadata. A writer turns
those rows into a pdf, xlsx or csv file under `settings.reports_dir`.

Rows are flat dicts; the first row's keys become the column headers.
"""

import csv
import io
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.client import Client
from app.models.container import Container
from app.models.expense import Expense
from app.models.income import Income
from app.models.report import Report
from app.models.shipment import Shipment
from app.models.supplier import Supplier
from app.schemas.container import CONTAINER_STATUSES, CONTAINER_TYPES
from app.schemas.shipment import SHIPMENT_STATUSES

logger = logging.getLogger("cargoflow.reports")

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
EXTENSIONS = {"pdf": "pdf", "excel": "xlsx", "csv": "csv"}


@dataclass
class ReportData:
    rows: list[dict]
    record_count: int = 0
    total_value: float = 0
    extra: dict = field(default_factory=dict)


# ── Formatting helpers ───────────────────────────────────────

def human_size(num_bytes: int) -> str:
    """'x.xx MB' from 1 MB upward, 'x.xx KB' below."""
    mb = num_bytes / (1024 * 1024)
    if mb >= 1:
        return f"{mb:.2f} MB"
    return f"{num_bytes / 1024:.2f} KB"


def storage_size(num_bytes: int) -> str:
    return f"{num_bytes / (1024 ** 3):.2f} GB"


def percent(part: int | float, whole: int | float, empty: str = "N/A") -> str:
    if not whole:
        return empty
    return f"{part / whole * 100:.1f}%"


def default_report_name(report_type: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{report_type.replace('_', ' ').title()} Report - {today.isoformat()}"


def download_filename(name: str, extension: str) -> str:
    """Report name made safe for a Content-Disposition filename."""
    stem = re.sub(r"[^\w .-]+", "_", name).strip(" ._") or "report"
    return f"{stem}.{extension}"


def _created_between(model, start: date, end: date) -> list:
    return [
        model.created_at >= datetime.combine(start, time.min),
        model.created_at < datetime.combine(end + timedelta(days=1), time.min),
    ]


def _dated_between(model, start: date, end: date) -> list:
    return [model.date >= start, model.date <= end]


def _fmt_date(d: date | None) -> str:
    return d.isoformat() if d else "N/A"


# ── Builders ─────────────────────────────────────────────────

async def build_shipment_data(db, start, end, filters) -> ReportData:
    stmt = select(Shipment).where(*_created_between(Shipment, start, end))
    if filters.get("status"):
        stmt = stmt.where(Shipment.status == filters["status"])
    if filters.get("client"):
        stmt = stmt.where(Shipment.client_id == filters["client"])
    shipments = (await db.execute(stmt.order_by(Shipment.created_at.desc()))).unique().scalars().all()

    rows = [{
        "shipment_code": s.shipment_code,
        "tracking_number": s.tracking_number,
        "client": s.client_name or "N/A",
        "supplier": s.supplier_name or "N/A",
        "status": s.status,
        "origin": f"{s.origin_port}, {s.origin_country}",
        "destination": f"{s.destination_port}, {s.destination_country}",
        "cost": s.total_cost or 0,
        "currency": s.currency,
        "booking_date": _fmt_date(s.booking_date),
        "estimated_arrival": _fmt_date(s.estimated_arrival),
    } for s in shipments]
    return ReportData(rows, len(rows), round(sum(r["cost"] for r in rows), 2))


async def build_financial_data(db, start, end, filters) -> ReportData:
    incomes = (await db.execute(
        select(Income).where(*_dated_between(Income, start, end)).order_by(Income.date)
    )).scalars().all()
    expenses = (await db.execute(
        select(Expense).where(*_dated_between(Expense, start, end)).order_by(Expense.date)
    )).scalars().all()

    total_income = round(sum(i.amount or 0 for i in incomes), 2)
    total_expenses = round(sum(e.amount or 0 for e in expenses), 2)
    net_profit = round(total_income - total_expenses, 2)

    blank = {"category": "", "amount": "", "detail": ""}
    rows = [
        {"category": "Total Income", "amount": total_income, "detail": len(incomes)},
        {"category": "Total Expenses", "amount": total_expenses, "detail": len(expenses)},
        {"category": "Net Profit", "amount": net_profit, "detail": "-"},
        blank,
        {"category": "--- Income Breakdown ---", "amount": "", "detail": ""},
        *({"category": i.source, "amount": i.amount, "detail": i.description} for i in incomes),
        blank,
        {"category": "--- Expense Breakdown ---", "amount": "", "detail": ""},
        *({"category": e.category, "amount": e.amount, "detail": e.description} for e in expenses),
    ]
    return ReportData(
        rows,
        len(incomes) + len(expenses),
        total_income,
        {"total_income": total_income, "total_expenses": total_expenses, "net_profit": net_profit},
    )


def _performance_rows(shipments, key, label, code, with_revenue: bool) -> list[dict]:
    groups: dict[str, dict] = {}
    counters = defaultdict(lambda: {"shipments": 0, "revenue": 0.0, "on_time": 0, "delivered": 0})
    for s in shipments:
        owner = getattr(s, key)
        if owner is None:
            continue
        groups.setdefault(owner.id, {
            f"{label}_name": owner.company_name if label == "client" else owner.name,
            f"{label}_code": getattr(owner, code),
        })
        c = counters[owner.id]
        c["shipments"] += 1
        c["revenue"] += s.total_cost or 0
        if s.status == "delivered":
            c["delivered"] += 1
            if s.delivered_on_time:
                c["on_time"] += 1

    rows = []
    for owner_id, row in groups.items():
        c = counters[owner_id]
        row["shipment_count"] = c["shipments"]
        if with_revenue:
            row["total_revenue"] = round(c["revenue"], 2)
        row["on_time_deliveries"] = c["on_time"]
        row["total_deliveries"] = c["delivered"]
        row["on_time_rate"] = percent(c["on_time"], c["delivered"])
        rows.append(row)
    return rows


async def build_client_performance_data(db, start, end, filters) -> ReportData:
    stmt = select(Shipment).where(*_created_between(Shipment, start, end))
    if filters.get("client"):
        stmt = stmt.where(Shipment.client_id == filters["client"])
    shipments = (await db.execute(stmt)).unique().scalars().all()

    rows = _performance_rows(shipments, "client", "client", "client_code", with_revenue=True)
    return ReportData(rows, len(rows), round(sum(r["total_revenue"] for r in rows), 2))


async def build_supplier_performance_data(db, start, end, filters) -> ReportData:
    stmt = select(Shipment).where(*_created_between(Shipment, start, end))
    if filters.get("supplier"):
        stmt = stmt.where(Shipment.supplier_id == filters["supplier"])
    shipments = (await db.execute(stmt)).unique().scalars().all()

    rows = _performance_rows(shipments, "supplier", "supplier", "supplier_code", with_revenue=False)
    return ReportData(rows, len(rows), 0)


async def build_container_utilization_data(db, start, end, filters) -> ReportData:
    stmt = select(Container)
    if filters.get("container_type"):
        stmt = stmt.where(Container.type == filters["container_type"])
    if filters.get("status"):
        stmt = stmt.where(Container.status == filters["status"])
    containers = (await db.execute(stmt.order_by(Container.container_code))).scalars().all()

    rows = [{
        "container_code": c.container_code,
        "container_number": c.container_number,
        "type": c.type,
        "status": c.status,
        "condition": c.condition,
        "location": c.location or "N/A",
        "last_inspection": _fmt_date(c.last_inspection_date),
    } for c in containers]
    in_use = sum(1 for c in containers if c.status == "in_use")
    return ReportData(rows, len(rows), 0, {
        "utilization_rate": percent(in_use, len(containers), empty="0.0%"),
        "in_use": in_use,
        "total": len(containers),
    })


async def build_performance_analytics_data(db, start, end, filters) -> ReportData:
    shipments = (await db.execute(
        select(Shipment).where(*_created_between(Shipment, start, end))
    )).unique().scalars().all()
    revenue = sum((await db.execute(
        select(Income.amount).where(*_dated_between(Income, start, end))
    )).scalars().all())
    costs = sum((await db.execute(
        select(Expense.amount).where(*_dated_between(Expense, start, end))
    )).scalars().all())
    net = revenue - costs

    delivered = [s for s in shipments if s.status == "delivered"]
    on_time = sum(1 for s in delivered if s.delivered_on_time)
    rows = [
        {"metric": "Total Shipments", "value": len(shipments)},
        {"metric": "Total Revenue", "value": f"${revenue:,.2f}"},
        {"metric": "Total Costs", "value": f"${costs:,.2f}"},
        {"metric": "Net Profit", "value": f"${net:,.2f}"},
        {"metric": "Profit Margin", "value": percent(net, revenue, empty="0.0%")},
        {"metric": "On-Time Delivery Rate", "value": percent(on_time, len(delivered), empty="0.0%")},
        {"metric": "Delivered Shipments", "value": len(delivered)},
        {"metric": "In-Transit Shipments", "value": sum(1 for s in shipments if s.status == "in_transit")},
    ]
    return ReportData(rows, len(rows), round(revenue, 2))


BUILDERS = {
    "shipment": build_shipment_data,
    "financial": build_financial_data,
    "client_performance": build_client_performance_data,
    "container_utilization": build_container_utilization_data,
    "performance_analytics": build_performance_analytics_data,
    "supplier_performance": build_supplier_performance_data,
}


# ── Configuration descriptors ────────────────────────────────

async def report_configuration(db: AsyncSession, report_type: str) -> dict:
    """Formats and filter descriptors the UI offers for a report type."""
    formats = ["pdf", "excel", "csv"]
    include_charts = {"name": "include_charts", "type": "boolean"}

    if report_type in ("shipment", "client_performance"):
        clients = (await db.execute(
            select(Client.id, Client.company_name).order_by(Client.company_name)
        )).all()
        client_filter = {
            "name": "client", "type": "select",
            "options": [{"value": cid, "label": name} for cid, name in clients],
        }
        if report_type == "shipment":
            return {"formats": formats, "filters": [
                {"name": "status", "type": "select", "options": list(SHIPMENT_STATUSES)},
                client_filter,
                include_charts,
            ]}
        return {"formats": formats, "filters": [client_filter, include_charts]}

    if report_type == "financial":
        return {"formats": formats, "filters": [
            {"name": "group_by", "type": "select", "options": ["month", "category", "shipment"]},
            include_charts,
            {"name": "include_summary", "type": "boolean"},
        ]}
    if report_type == "container_utilization":
        return {"formats": formats, "filters": [
            {"name": "container_type", "type": "select", "options": list(CONTAINER_TYPES)},
            {"name": "status", "type": "select", "options": list(CONTAINER_STATUSES)},
        ]}
    if report_type == "performance_analytics":
        return {"formats": formats, "filters": [
            {"name": "metrics", "type": "multiselect", "options": ["kpi", "trends", "efficiency"]},
            include_charts,
        ]}

    suppliers = (await db.execute(select(Supplier.id, Supplier.name).order_by(Supplier.name))).all()
    return {"formats": formats, "filters": [
        {"name": "supplier", "type": "select",
         "options": [{"value": sid, "label": name} for sid, name in suppliers]},
        {"name": "include_ratings", "type": "boolean"},
    ]}


# ── Writers ──────────────────────────────────────────────────

def _headers(rows: list[dict]) -> list[str]:
    return list(rows[0].keys()) if rows else []


def _title(key: str) -> str:
    return key.replace("_", " ").title()


def write_csv(rows: list[dict]) -> bytes:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_headers(rows), extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def write_excel(rows: list[dict], title: str, summary: dict) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Report"

    headers = _headers(rows)
    ws.append([_title(h) for h in headers])

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(fill_type="solid", fgColor="1E3A8A")
    thin = Side(border_style="thin", color="CBD5E1")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.border = border

    for row in rows:
        ws.append([row.get(h) for h in headers])
        for cell in ws[ws.max_row]:
            cell.border = border

    for column_cells in ws.columns:
        length = max(len(str(c.value)) if c.value is not None else 0 for c in column_cells)
        ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(length + 2, 60)
    ws.freeze_panes = "A2"

    info = wb.create_sheet("Summary")
    info.append(["Report", title])
    for key, value in summary.items():
        info.append([_title(key), value if not isinstance(value, dict) else str(value)])
    info.column_dimensions["A"].width = 24
    info.column_dimensions["B"].width = 40

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def write_pdf(rows: list[dict], title: str, period: str, summary: dict, company: str) -> bytes:
    """Render rows as a wrapped landscape table under a letterhead band."""
    page = landscape(A4)
    width, height = page
    margin = 36
    navy = HexColor("#1e3a8a")

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=page,
        leftMargin=margin,
        rightMargin=margin,
        topMargin=80,
        bottomMargin=margin,
        title=title,
        author=company,
    )

    def letterhead(canv, _doc) -> None:
        canv.saveState()
        canv.setFillColor(navy)
        canv.rect(0, height - 60, width, 60, stroke=0, fill=1)
        canv.setFillColor(HexColor("#ffffff"))
        canv.setFont("Helvetica-Bold", 16)
        canv.drawString(margin, height - 38, company)
        canv.setFont("Helvetica", 10)
        canv.drawRightString(width - margin, height - 32, title)
        canv.drawRightString(width - margin, height - 46, period)
        canv.restoreState()

    styles = getSampleStyleSheet()
    header_style = ParagraphStyle(
        "ReportHeader", parent=styles["Normal"], fontName="Helvetica-Bold", fontSize=8, leading=9,
    )
    cell_style = ParagraphStyle("ReportCell", parent=styles["Normal"], fontSize=8, leading=9.5)

    story: list = []
    for key, value in summary.items():
        story.append(Paragraph(escape(f"{_title(key)}: {value}"), styles["Normal"]))
    story.append(Spacer(1, 10))

    headers = _headers(rows)
    if not rows:
        story.append(Paragraph("No records for this period.", styles["Normal"]))
    else:
        table_rows = [[Paragraph(escape(_title(h)), header_style) for h in headers]]
        for row in rows:
            cells = []
            for h in headers:
                value = row.get(h)
                text = f"{value:,.2f}" if isinstance(value, float) else str(value if value is not None else "")
                cells.append(Paragraph(escape(text), cell_style))
            table_rows.append(cells)

        table = Table(table_rows, colWidths=[doc.width / len(headers)] * len(headers), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), "#f1f5f9"),
                    ("LINEBELOW", (0, 0), (-1, 0), 0.8, navy),
                    ("LINEBELOW", (0, 1), (-1, -1), 0.25, "#cbd5e1"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 3),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 3),
                    ("TOPPADDING", (0, 0), (-1, -1), 2),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
                ]
            )
        )
        story.append(table)

    doc.build(story, onFirstPage=letterhead, onLaterPages=letterhead)
    return buf.getvalue()


# ── Orchestration ────────────────────────────────────────────

async def generate_report_file(db: AsyncSession, report: Report, company: str = "CargoFlow") -> None:
    """Build the report's data, write its file and fill in the record.

    Leaves the record completed; callers handle failures.
    """
    data = await BUILDERS[report.type](db, report.start_date, report.end_date, report.filters or {})
    summary = {"record_count": data.record_count, "total_value": data.total_value, **data.extra}
    period = f"{report.start_date.isoformat()} to {report.end_date.isoformat()}"

    if report.format == "pdf":
        content = write_pdf(data.rows, report.name, period, summary, company)
    elif report.format == "excel":
        content = write_excel(data.rows, report.name, summary)
    else:
        content = write_csv(data.rows)

    out_dir = Path(settings.reports_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    filename = (
        f"report-{report.type}-{report.report_code}-"
        f"{datetime.utcnow():%Y%m%d%H%M%S}.{EXTENSIONS[report.format]}"
    )
    path = out_dir / filename
    path.write_bytes(content)

    size = path.stat().st_size
    report.file_path = str(path)
    report.file_size = human_size(size)
    report.file_size_bytes = size
    report.record_count = data.record_count
    report.total_value = data.total_value
    report.report_metadata = {**data.extra, "parameters": report.filters or {}}
    report.status = "completed"
    logger.info("Generated %s (%s, %s)", report.report_code, report.format, report.file_size)

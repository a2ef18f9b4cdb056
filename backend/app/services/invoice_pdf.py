"""Shipment invoice: preview data and its PDF rendering.

The preview is derived entirely from the shipment and its client; nothing
is persisted. If an invoice already exists for the shipment its number is
reused, otherwise the number the next invoice would receive is shown.
"""

import io
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.client import Client
from app.models.invoice import Invoice
from app.models.shipment import Shipment
from app.services.app_settings import get_setting_value
from app.utils.numbering import generate_code

# Freight share of the shipment's total cost shown on the line item
FREIGHT_SHARE = 0.85
# Packaging allowance applied to net weight
GROSS_WEIGHT_FACTOR = 1.1

NAVY = HexColor("#1e3a8a")
SLATE = HexColor("#64748b")
PALE = HexColor("#f1f5f9")

W, H = A4
MARGIN = 45


def _billing_address(client: Client) -> str:
    billing = client.billing_address or {}
    if billing and not billing.get("same_as_address", True):
        parts = [billing.get(k) for k in ("street", "city", "state", "postal_code", "country")]
    else:
        parts = [
            client.address_street, client.address_city, client.address_state,
            client.address_postal_code, client.address_country,
        ]
    return ", ".join(p for p in parts if p)


async def build_shipment_preview(
    db: AsyncSession, shipment: Shipment, client: Client
) -> dict:
    existing = (await db.execute(
        select(Invoice.invoice_number)
        .where(Invoice.shipment_id == shipment.id, Invoice.status != "cancelled")
        .order_by(Invoice.created_at.desc())
        .limit(1)
    )).scalar_one_or_none()
    invoice_number = existing or await generate_code(db, "invoice_no")

    net_weight = shipment.cargo_weight or 0
    total = shipment.total_cost or 0
    line_items = [{
        "description": shipment.cargo_description,
        "quantity": shipment.cargo_quantity or 1,
        "net_weight": net_weight,
        "gross_weight": round(net_weight * GROSS_WEIGHT_FACTOR),
        "dimensions": f"{shipment.cargo_volume or 0}m³",
        "freight": round(total * FREIGHT_SHARE),
        "customs": 0,
        "total": total,
    }]

    subtotal = sum(item["total"] for item in line_items)
    rate = await get_setting_value(db, "INVOICE_TAX_RATE", settings.invoice_tax_rate)
    tax = round(subtotal * float(rate), 2)

    return {
        "invoice_number": invoice_number,
        "date": date.today().strftime("%d/%m/%Y"),
        "billed_to": {
            "name": client.contact_name,
            "company": client.company_name,
            "address": _billing_address(client),
            "email": client.contact_email,
        },
        "shipment_details": {
            "shipment_code": shipment.shipment_code,
            "tracking_number": shipment.tracking_number,
            "origin": f"{shipment.origin_port}, {shipment.origin_country}",
            "destination": f"{shipment.destination_port}, {shipment.destination_country}",
            "departure_date": shipment.departure_date.isoformat() if shipment.departure_date else None,
            "estimated_arrival": (
                shipment.estimated_arrival.isoformat() if shipment.estimated_arrival else None
            ),
            "container_type": shipment.cargo_container_type,
            "currency": shipment.currency,
        },
        "line_items": line_items,
        "summary": {
            "subtotal": round(subtotal, 2),
            "tax": tax,
            "total": round(subtotal + tax, 2),
        },
        "notes": shipment.notes or "Payment is due within the client's agreed payment terms.",
    }


# ── PDF ──────────────────────────────────────────────────────

def _cell(text, style) -> Paragraph:
    return Paragraph(escape(str(text if text is not None else "")), style)


def render_invoice_pdf(preview: dict, company: dict | None = None) -> bytes:
    """Lay the preview out on A4 and return the PDF bytes.

    Every text block is a Paragraph, so long addresses, descriptions and
    notes wrap inside their cell.
    """
    company = company or {}
    company_name = company.get("company_name") or "CargoFlow"
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=110,
        bottomMargin=MARGIN,
        title=f"Invoice {preview['invoice_number']}",
        author=company_name,
    )

    def header_band(canv, _doc) -> None:
        canv.saveState()
        canv.setFillColor(NAVY)
        canv.rect(0, H - 90, W, 90, stroke=0, fill=1)
        canv.setFillColor(HexColor("#ffffff"))
        canv.setFont("Helvetica-Bold", 20)
        canv.drawString(MARGIN, H - 50, company_name)
        canv.setFont("Helvetica", 10)
        canv.drawRightString(W - MARGIN, H - 45, f"INVOICE {preview['invoice_number']}")
        canv.drawRightString(W - MARGIN, H - 60, f"Date: {preview['date']}")
        canv.restoreState()

    styles = getSampleStyleSheet()
    label = ParagraphStyle("Label", parent=styles["Normal"], fontName="Helvetica-Bold",
                           fontSize=9, textColor=SLATE)
    body = ParagraphStyle("Body", parent=styles["Normal"], fontSize=10, leading=13)
    small = ParagraphStyle("Small", parent=styles["Normal"], fontSize=9, leading=11)
    small_bold = ParagraphStyle("SmallBold", parent=small, fontName="Helvetica-Bold")
    notes = ParagraphStyle("Notes", parent=small, fontName="Helvetica-Oblique", textColor=SLATE)

    billed = preview["billed_to"]
    details = preview["shipment_details"]
    currency = details.get("currency") or "USD"
    left = [billed["company"], billed["name"], billed["address"], billed["email"]]
    right = [
        f"{details['shipment_code']} / {details['tracking_number']}",
        f"From: {details['origin']}",
        f"To: {details['destination']}",
        f"ETA: {details['estimated_arrival'] or '-'}",
    ]
    half = doc.width / 2
    parties = Table(
        [
            [Paragraph("BILLED TO", label), Paragraph("SHIPMENT", label)],
            [
                [_cell(line, body) for line in left if line],
                [_cell(line, body) for line in right],
            ],
        ],
        colWidths=[half, half],
    )
    parties.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))

    headers = ["Description", "Qty", "Net kg", "Gross kg", "Volume", "Freight", "Customs", "Total"]
    item_rows = [[Paragraph(h, small_bold) for h in headers]]
    for item in preview["line_items"]:
        item_rows.append([
            _cell(item["description"], small), _cell(item["quantity"], small),
            _cell(item["net_weight"], small), _cell(item["gross_weight"], small),
            _cell(item["dimensions"], small), _cell(item["freight"], small),
            _cell(item["customs"], small), _cell(f"{item['total']:,.2f}", small),
        ])
    narrow = (doc.width * 0.7) / (len(headers) - 1)
    items = Table(item_rows, colWidths=[doc.width * 0.3] + [narrow] * (len(headers) - 1),
                  repeatRows=1)
    items.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), PALE),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, "#cbd5e1"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
    ]))

    summary = preview["summary"]
    totals = Table(
        [
            [Paragraph(name, small_bold if key == "total" else small),
             Paragraph(f"{currency} {summary[key]:,.2f}", small_bold if key == "total" else small)]
            for name, key in (("Subtotal", "subtotal"), ("Tax", "tax"), ("Total", "total"))
        ],
        colWidths=[80, 110],
        hAlign="RIGHT",
    )
    totals.setStyle(TableStyle([("LINEABOVE", (0, -1), (-1, -1), 0.8, NAVY)]))

    story = [
        parties,
        Spacer(1, 24),
        items,
        Spacer(1, 18),
        totals,
        Spacer(1, 24),
        _cell(preview["notes"], notes),
    ]
    doc.build(story, onFirstPage=header_band, onLaterPages=header_band)
    return buf.getvalue()

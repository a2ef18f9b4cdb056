"""Shared number generation utility.

Generates sequential, human-readable codes for every numbered entity.

Format tokens:
  {year}       → current year (YYYY)
  {seq:N}      → zero-padded sequence number, N digits; counted per prefix,
                 so yearly formats restart at 1 each January

Formats:
  client:     CLT-{seq:3}
  supplier:   SUP-{seq:3}
  container:  CNT-{seq:3}
  shipment:   SHP-{seq:3}
  tracking:   CCT{year}{seq:3}
  invoice:    INV-{seq:3}
  invoice_no: CCT-INV-{year}-{seq:4}
  ticket:     TKT-{year}-{seq:5}
  report:     RPT-{seq:3}
  inquiry:    INQ-{year}-{seq:4}
"""

import re
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.client import Client
from app.models.container import Container
from app.models.inquiry import Inquiry
from app.models.invoice import Invoice
from app.models.report import Report
from app.models.shipment import Shipment
from app.models.supplier import Supplier
from app.models.support_ticket import SupportTicket

FORMATS = {
    "client": "CLT-{seq:3}",
    "supplier": "SUP-{seq:3}",
    "container": "CNT-{seq:3}",
    "shipment": "SHP-{seq:3}",
    "tracking": "CCT{year}{seq:3}",
    "invoice": "INV-{seq:3}",
    "invoice_no": "CCT-INV-{year}-{seq:4}",
    "ticket": "TKT-{year}-{seq:5}",
    "report": "RPT-{seq:3}",
    "inquiry": "INQ-{year}-{seq:4}",
}

# entity → code column to scan
ENTITY_COLUMN_MAP = {
    "client": Client.client_code,
    "supplier": Supplier.supplier_code,
    "container": Container.container_code,
    "shipment": Shipment.shipment_code,
    "tracking": Shipment.tracking_number,
    "invoice": Invoice.invoice_code,
    "invoice_no": Invoice.invoice_number,
    "ticket": SupportTicket.ticket_number,
    "report": Report.report_code,
    "inquiry": Inquiry.reference,
}


def _seq_width(fmt: str) -> int:
    seq_match = re.search(r"\{seq:(\d+)\}", fmt)
    return int(seq_match.group(1)) if seq_match else 3


def _build_prefix(fmt: str, year: str) -> str:
    """Everything before {seq:N}, with {year} filled in."""
    return re.sub(r"\{seq:\d+\}.*$", "", fmt.replace("{year}", year))


async def _next_sequence(db: AsyncSession, entity: str, prefix: str) -> int:
    """Highest existing sequence under `prefix`, plus one.

    Uses the max numeric suffix rather than a row count so deleted rows
    never cause a code to be reissued.
    """
    column = ENTITY_COLUMN_MAP[entity]
    result = await db.execute(select(column).where(column.like(f"{prefix}%")))
    highest = 0
    for (code,) in result.all():
        suffix = code[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


async def generate_code(db: AsyncSession, entity: str) -> str:
    """Generate the next sequential code for `entity`.

    Args:
        db: Database session
        entity: A key of FORMATS ("client", "shipment", "invoice_no", ...)

    Returns:
        Generated code string, e.g. "SHP-004" or "CCT-INV-2026-0012"
    """
    fmt = FORMATS[entity]
    year = str(date.today().year)
    prefix = _build_prefix(fmt, year)
    seq_num = await _next_sequence(db, entity, prefix)
    return prefix + f"{seq_num:0{_seq_width(fmt)}d}"


async def count_rows(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar() or 0

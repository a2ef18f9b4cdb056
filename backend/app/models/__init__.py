"""Aggregate model imports for Alembic auto-detection."""

# Access control
from app.models.role import Role  # noqa: F401
from app.models.user import User  # noqa: F401

# Parties & equipment
from app.models.client import Client  # noqa: F401
from app.models.supplier import Supplier  # noqa: F401
from app.models.container import Container  # noqa: F401

# Operations
from app.models.shipment import Shipment  # noqa: F401
from app.models.tracking_update import TrackingUpdate  # noqa: F401
from app.models.support_ticket import SupportTicket  # noqa: F401
from app.models.inquiry import Inquiry  # noqa: F401

# Financial
from app.models.invoice import Invoice  # noqa: F401
from app.models.expense import Expense, ExpenseCategory  # noqa: F401
from app.models.income import Income, IncomeSource  # noqa: F401

# Admin
from app.models.setting import Setting  # noqa: F401
from app.models.report import Report  # noqa: F401
from app.models.activity_log import ActivityLog  # noqa: F401

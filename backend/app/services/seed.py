"""Reference data every installation needs.

Idempotent: existing rows are left alone (system roles get their
permission lists refreshed so catalogue changes roll out on re-seed).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import SYSTEM_ROLES
from app.models.expense import ExpenseCategory
from app.models.income import IncomeSource
from app.models.role import Role
from app.models.setting import COMPANY_INFO, SYSTEM_PREFERENCES, Setting

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_CATEGORIES = {
    "fuel": "Fuel",
    "port_fees": "Port Fees",
    "customs_duties": "Customs Duties",
    "handling_charges": "Handling Charges",
    "container_maintenance": "Container Maintenance",
    "insurance": "Insurance",
    "staff_salaries": "Staff Salaries",
    "office_expenses": "Office Expenses",
    "vehicle_maintenance": "Vehicle Maintenance",
    "marketing": "Marketing",
    "technology": "Technology",
    "other": "Other",
}

DEFAULT_INCOME_SOURCES = {
    "freight_charges": "Freight Charges",
    "handling_fees": "Handling Fees",
    "storage_fees": "Storage Fees",
    "documentation_fees": "Documentation Fees",
    "insurance_charges": "Insurance Charges",
    "late_payment_fees": "Late Payment Fees",
    "other_services": "Other Services",
    "other": "Other",
}

DEFAULT_SETTINGS = [
    {
        "key": COMPANY_INFO,
        "value": {
            "company_name": "CargoFlow Logistics",
            "company_email": "",
            "company_phone": "",
            "company_address": "",
            "website": "",
            "tax_id": "",
        },
        "type": "object",
        "category": "general",
        "description": "Company details printed on invoices and reports",
        "is_public": False,
    },
    {
        "key": SYSTEM_PREFERENCES,
        "value": {
            "language": "English",
            "timezone": "UTC",
            "date_format": "DD/MM/YYYY",
            "currency": "USD",
        },
        "type": "object",
        "category": "general",
        "description": "Locale and formatting defaults",
        "is_public": True,
    },
    {
        "key": "INVOICE_TAX_RATE",
        "value": 0.09,
        "type": "number",
        "category": "billing",
        "description": "Tax rate applied to invoice previews",
        "is_public": False,
    },
]


async def seed_roles(db: AsyncSession) -> dict[str, Role]:
    result = await db.execute(select(Role))
    roles = {r.name: r for r in result.scalars().all()}

    for name, spec in SYSTEM_ROLES.items():
        role = roles.get(name)
        if role is None:
            role = Role(name=name, is_system=True, **spec)
            db.add(role)
            roles[name] = role
            logger.info("Created system role %s", name)
        else:
            role.permissions = spec["permissions"]
            role.is_system = True
    await db.flush()
    return roles


async def seed_lookups(db: AsyncSession) -> None:
    for model, defaults in (
        (ExpenseCategory, DEFAULT_EXPENSE_CATEGORIES),
        (IncomeSource, DEFAULT_INCOME_SOURCES),
    ):
        result = await db.execute(select(model.value))
        existing = set(result.scalars().all())
        for value, label in defaults.items():
            if value not in existing:
                db.add(model(value=value, label=label, is_system=True))
    await db.flush()


async def seed_settings(db: AsyncSession) -> None:
    result = await db.execute(select(Setting.key))
    existing = set(result.scalars().all())
    for spec in DEFAULT_SETTINGS:
        if spec["key"] not in existing:
            db.add(Setting(**spec))
    await db.flush()


async def seed_all(db: AsyncSession) -> None:
    await seed_roles(db)
    await seed_lookups(db)
    await seed_settings(db)

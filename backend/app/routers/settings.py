"""Settings router — key/value store, company info, preferences, exports.

Endpoints:
    GET  /api/settings/                 All settings (public only without settings:read)
    GET  /api/settings/company          Company info            (super_admin)
    PUT  /api/settings/company          Update company info     (super_admin)
    GET  /api/settings/system           System preferences      (super_admin)
    PUT  /api/settings/system           Update preferences      (super_admin)
    PUT  /api/settings/profile          Update own profile
    GET  /api/settings/notifications    Own notification preferences
    PUT  /api/settings/notifications    Update them
    PUT  /api/settings/password         Change own password
    GET  /api/settings/export           Full data export        (super_admin)
    GET  /api/settings/export/me        Own data export
    GET  /api/settings/{key}            One setting
    PUT  /api/settings/{key}            Upsert a setting        (settings:write)
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import (
    get_current_user,
    get_optional_user,
    require_permission,
    require_role,
    user_can,
)
from app.database import get_db
from app.models.client import Client
from app.models.container import Container
from app.models.expense import Expense
from app.models.income import Income
from app.models.invoice import Invoice
from app.models.setting import COMPANY_INFO, SYSTEM_PREFERENCES, Setting
from app.models.shipment import Shipment
from app.models.supplier import Supplier
from app.models.support_ticket import SupportTicket
from app.models.user import User
from app.schemas.auth import TokenResponse, UserOut
from app.schemas.client import ClientOut
from app.schemas.container import ContainerOut
from app.schemas.financial import ExpenseOut, IncomeOut
from app.schemas.invoice import InvoiceOut
from app.schemas.settings import (
    CompanyInfo,
    CompanyInfoUpdate,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    PasswordChange,
    ProfileUpdate,
    SettingOut,
    SettingUpsert,
    SystemPreferences,
    SystemPreferencesUpdate,
)
from app.schemas.shipment import ShipmentOut
from app.schemas.supplier import SupplierOut
from app.schemas.support import TicketOut
from app.services.accounts import (
    build_token_response,
    build_user_out,
    change_own_password,
    update_profile,
)
from app.services.app_settings import get_setting, get_setting_value, upsert_setting
from app.utils.activity import log_activity

router = APIRouter()

_super_admin = require_role("super_admin")


# ── Key/value listing ────────────────────────────────────────

@router.get("/", response_model=list[SettingOut])
async def list_settings(
    category: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    stmt = select(Setting)
    if user is None or not user_can(user, "settings:read"):
        stmt = stmt.where(Setting.is_public.is_(True))
    if category:
        stmt = stmt.where(Setting.category == category)
    result = await db.execute(stmt.order_by(Setting.category, Setting.key))
    return result.scalars().all()


# ── Company info / system preferences ────────────────────────

@router.get("/company", response_model=CompanyInfo)
async def get_company_info(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_super_admin),
):
    return CompanyInfo(**(await get_setting_value(db, COMPANY_INFO, {})))


@router.put("/company", response_model=CompanyInfo)
async def update_company_info(
    body: CompanyInfoUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_super_admin),
):
    current = CompanyInfo(**(await get_setting_value(db, COMPANY_INFO, {})))
    merged = current.model_copy(update=body.model_dump(exclude_none=True))
    await upsert_setting(
        db, COMPANY_INFO, merged.model_dump(), updated_by=user.id, type="object", is_public=False,
    )
    await log_activity(
        db, user, action="updated", entity_type="settings", entity_code=COMPANY_INFO,
        summary="Updated company information",
    )
    return merged


@router.get("/system", response_model=SystemPreferences)
async def get_system_preferences(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_super_admin),
):
    return SystemPreferences(**(await get_setting_value(db, SYSTEM_PREFERENCES, {})))


@router.put("/system", response_model=SystemPreferences)
async def update_system_preferences(
    body: SystemPreferencesUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_super_admin),
):
    current = SystemPreferences(**(await get_setting_value(db, SYSTEM_PREFERENCES, {})))
    merged = current.model_copy(update=body.model_dump(exclude_none=True))
    await upsert_setting(
        db, SYSTEM_PREFERENCES, merged.model_dump(), updated_by=user.id, type="object", is_public=True,
    )
    return merged


# ── Per-user ─────────────────────────────────────────────────

@router.put("/profile", response_model=UserOut)
async def update_own_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await update_profile(db, user, body.model_dump(exclude_unset=True))
    return build_user_out(user)


@router.get("/notifications", response_model=NotificationPreferences)
async def get_notifications(user: User = Depends(get_current_user)):
    return NotificationPreferences(**(user.notification_preferences or {}))


@router.put("/notifications", response_model=NotificationPreferences)
async def update_notifications(
    body: NotificationPreferencesUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    current = NotificationPreferences(**(user.notification_preferences or {}))
    merged = current.model_copy(update=body.model_dump(exclude_none=True))
    user.notification_preferences = merged.model_dump()
    await db.flush()
    return merged


@router.put("/password", response_model=TokenResponse)
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if body.new_password != body.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    await change_own_password(user, body.current_password, body.new_password)
    await log_activity(
        db, user, action="password_changed", entity_type="user", entity_id=user.id,
    )
    await db.flush()
    return build_token_response(user)


# ── Exports ──────────────────────────────────────────────────

def _dump(schema, rows) -> list[dict]:
    return [schema.model_validate(r).model_dump(mode="json") for r in rows]


@router.get("/export")
async def export_all(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_super_admin),
):
    """Every business record, grouped by entity with counts."""
    users = (await db.execute(select(User))).unique().scalars().all()
    data = {"users": [build_user_out(u).model_dump(mode="json") for u in users]}
    for name, model, schema in (
        ("clients", Client, ClientOut),
        ("suppliers", Supplier, SupplierOut),
        ("containers", Container, ContainerOut),
        ("shipments", Shipment, ShipmentOut),
        ("expenses", Expense, ExpenseOut),
        ("income", Income, IncomeOut),
    ):
        rows = (await db.execute(select(model))).unique().scalars().all()
        data[name] = _dump(schema, rows)

    await log_activity(
        db, user, action="exported", entity_type="settings", summary="Full data export",
    )
    return {
        "exported_at": datetime.utcnow().isoformat(),
        "counts": {name: len(rows) for name, rows in data.items()},
        "data": data,
    }


@router.get("/export/me")
async def export_me(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The caller's account plus the records tied to it."""
    payload: dict = {
        "exported_at": datetime.utcnow().isoformat(),
        "user": build_user_out(user).model_dump(mode="json"),
        "notification_preferences": NotificationPreferences(
            **(user.notification_preferences or {})
        ).model_dump(),
    }

    tickets = (await db.execute(
        select(SupportTicket).where(SupportTicket.created_by == user.id)
    )).scalars().all()
    payload["support_tickets"] = _dump(TicketOut, tickets)

    if user.client_id:
        client = await db.get(Client, user.client_id)
        payload["client"] = ClientOut.model_validate(client).model_dump(mode="json") if client else None
        shipments = (await db.execute(
            select(Shipment).where(Shipment.client_id == user.client_id)
        )).unique().scalars().all()
        invoices = (await db.execute(
            select(Invoice).where(Invoice.client_id == user.client_id)
        )).unique().scalars().all()
        payload["shipments"] = _dump(ShipmentOut, shipments)
        payload["invoices"] = _dump(InvoiceOut, invoices)
    return payload


# ── Single key ───────────────────────────────────────────────

@router.get("/{key}", response_model=SettingOut)
async def get_single_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    setting = await get_setting(db, key)
    can_read = user is not None and user_can(user, "settings:read")
    if not setting or (not setting.is_public and not can_read):
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting


@router.put("/{key}", response_model=SettingOut)
async def put_setting(
    key: str,
    body: SettingUpsert,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("settings:write")),
):
    setting = await upsert_setting(
        db, key, body.value,
        updated_by=user.id,
        type=body.type,
        category=body.category,
        description=body.description,
        is_public=body.is_public,
    )
    await log_activity(
        db, user, action="updated", entity_type="settings", entity_code=setting.key,
        summary=f"Set {setting.key}",
    )
    return setting

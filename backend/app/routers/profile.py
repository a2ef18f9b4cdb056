"""Self-service profile for portal and back-office users.

Endpoints:
    GET /api/profile    Own account (+ company record for client users)
    PUT /api/profile    Update own account (+ company fields for client users)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.models.client import Client
from app.models.user import User
from app.schemas.client import ClientOut
from app.schemas.settings import NotificationPreferences, ProfileOut, ProfileUpdate
from app.services.accounts import build_user_out, update_profile

router = APIRouter()


def _profile_out(user: User, client: Client | None) -> ProfileOut:
    return ProfileOut(
        **build_user_out(user).model_dump(),
        notification_preferences=NotificationPreferences(**(user.notification_preferences or {})),
        client=ClientOut.model_validate(client) if client else None,
    )


@router.get("/", response_model=ProfileOut)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await db.get(Client, user.client_id) if user.client_id else None
    return _profile_out(user, client)


@router.put("/", response_model=ProfileOut)
async def put_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await update_profile(
        db, user, body.model_dump(exclude_unset=True),
        include_company=user.user_type == "client",
    )
    return _profile_out(user, client)

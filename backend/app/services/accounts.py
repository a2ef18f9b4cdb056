"""User account helpers shared by the auth, users and profile routers."""

from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import create_access_token, create_refresh_token
from app.auth.password import hash_password, verify_password
from app.auth.permissions import WILDCARD, resolve_permissions
from app.auth.revocation import TokenRevocation
from app.middleware.exceptions import PermissionDeniedError
from app.models.client import Client
from app.models.role import Role
from app.models.user import User
from app.schemas.auth import TokenResponse, UserOut


def effective_permissions(user: User) -> list[str]:
    role_perms = user.role.permissions if user.role else []
    return resolve_permissions(role_perms, user.permission_override, user.blocked_permissions)


def build_user_out(user: User, permissions: list[str] | None = None) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        phone=user.phone,
        bio=user.bio,
        location=user.location,
        job_title=user.job_title,
        role=user.role.name if user.role else "",
        role_id=user.role_id,
        role_display_name=user.role.display_name if user.role else None,
        user_type=user.user_type,
        status=user.status,
        client_id=user.client_id,
        permissions=permissions if permissions is not None else effective_permissions(user),
        permission_override=user.permission_override or [],
        blocked_permissions=user.blocked_permissions or [],
        email_verified=user.email_verified,
        phone_verified=user.phone_verified,
        last_login=user.last_login,
        created_at=user.created_at,
    )


def build_token_response(user: User) -> TokenResponse:
    permissions = effective_permissions(user)
    role_name = user.role.name if user.role else ""
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            role=role_name,
            permissions=permissions,
            user_type=user.user_type,
        ),
        refresh_token=create_refresh_token(user_id=user.id, role=role_name),
        user=build_user_out(user, permissions),
    )


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def resolve_role_assignment(
    db: AsyncSession,
    role_id: str,
    user_type: str,
    client_id: str | None,
    *,
    self_service: bool = False,
) -> tuple[Role, str | None]:
    """Validate a role/user_type/client combination for a new user.

    Returns the role and the client_id to store (only client users keep one).
    A client user must be bound to an existing client. With self_service,
    roles carrying the wildcard permission cannot be taken.
    """
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=400, detail="Invalid role")
    if role.user_type != user_type:
        raise HTTPException(status_code=400, detail="Role does not match user type")

    if self_service and WILDCARD in (role.permissions or []):
        raise PermissionDeniedError("This role cannot be assigned at registration")

    if user_type != "client":
        return role, None
    if not client_id or not await db.get(Client, client_id):
        raise HTTPException(status_code=400, detail="Invalid client")
    return role, client_id


async def change_own_password(user: User, current_password: str, new_password: str) -> None:
    """Verify the current password, store the new one and revoke old sessions.

    The token the request was made with is revoked explicitly as well, so
    the caller must switch to the pair returned by build_token_response.
    """
    if not verify_password(current_password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    user.hashed_password = hash_password(new_password)
    user.password_changed_at = datetime.utcnow()
    await TokenRevocation.revoke_all_user_tokens(user.id)
    await TokenRevocation.revoke_token(
        user._token, user._token_payload.get("exp", 0)  # type: ignore[attr-defined]
    )


USER_PROFILE_FIELDS = ("first_name", "last_name", "email", "phone", "bio", "location", "job_title")
CLIENT_PROFILE_FIELDS = ("company_name", "trading_name", "industry", "website")


async def update_profile(
    db: AsyncSession, user: User, updates: dict, *, include_company: bool = False
) -> Client | None:
    """Apply self-service profile edits.

    With include_company, a client user's company fields are written to
    their client record, which is returned.
    """
    email = updates.get("email")
    if email and email.lower() != user.email:
        existing = await get_user_by_email(db, email)
        if existing and existing.id != user.id:
            raise HTTPException(status_code=400, detail="Email is already in use")
        user.email = email.lower()
        user.email_verified = False

    for field in USER_PROFILE_FIELDS:
        if field != "email" and updates.get(field) is not None:
            setattr(user, field, updates[field])

    client = None
    if user.client_id:
        client = await db.get(Client, user.client_id)
    if include_company and client is not None:
        for field in CLIENT_PROFILE_FIELDS:
            if updates.get(field) is not None:
                setattr(client, field, updates[field])

    await db.flush()
    return client

"""Team management router.

Endpoints:
    GET    /api/users/                   List users (filters)
    GET    /api/users/{id}               Detail
    POST   /api/users/                   Create user
    PUT    /api/users/{id}               Update user (overrides need users:permissions)
    DELETE /api/users/{id}               Delete user
    PUT    /api/users/{id}/toggle-status Flip active ↔ inactive
    PUT    /api/users/{id}/password      Admin sets a password
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission, user_can
from app.auth.password import hash_password
from app.auth.permissions import unknown_permissions
from app.auth.revocation import TokenRevocation
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.role import Role
from app.models.user import User
from app.schemas.auth import UserOut
from app.schemas.common import MessageResponse, PaginatedResponse
from app.schemas.user import SetPasswordRequest, UserCreate, UserUpdate
from app.services.accounts import build_user_out, get_user_by_email, resolve_role_assignment
from app.utils.activity import log_activity

router = APIRouter()


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise ResourceNotFoundError("User")
    return user


def _check_permission_lists(*lists: list[str] | None) -> None:
    for perms in lists:
        bad = unknown_permissions(perms or [])
        if bad:
            raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(bad)}")


# ── GET /api/users/ ──────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[UserOut])
async def list_users(
    user_type: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users:read")),
):
    base = select(User)
    if user_type:
        base = base.where(User.user_type == user_type)
    if status:
        base = base.where(User.status == status)
    if search:
        term = f"%{search}%"
        base = base.where(or_(
            User.first_name.ilike(term),
            User.last_name.ilike(term),
            User.email.ilike(term),
        ))

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    result = await db.execute(
        base.order_by(User.created_at.desc()).limit(limit).offset(offset)
    )
    return PaginatedResponse(
        items=[build_user_out(u) for u in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users:read")),
):
    return build_user_out(await _get_user(db, user_id))


# ── POST /api/users/ ─────────────────────────────────────────

@router.post("/", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:write")),
):
    if await get_user_by_email(db, body.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    if (body.permission_override or body.blocked_permissions) and not user_can(
        admin, "users:permissions"
    ):
        raise HTTPException(status_code=403, detail="Missing permissions: users:permissions")
    _check_permission_lists(body.permission_override, body.blocked_permissions)

    role, client_id = await resolve_role_assignment(
        db, body.role_id, body.user_type, body.client_id
    )

    user = User(
        email=body.email.lower(),
        hashed_password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        job_title=body.job_title,
        role_id=role.id,
        user_type=body.user_type,
        client_id=client_id,
        permission_override=body.permission_override,
        blocked_permissions=body.blocked_permissions,
        created_by=admin.id,
    )
    user.role = role
    db.add(user)
    await db.flush()

    await log_activity(
        db, admin, action="user_created", entity_type="user",
        entity_id=user.id, entity_code=user.email,
        summary=f"Created {role.display_name} account for {user.full_name}",
    )
    return build_user_out(user)


# ── PUT /api/users/{id} ──────────────────────────────────────

@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:write")),
):
    """Update profile fields, role, status or per-user permission tweaks.

    Passwords are never changed here (see PUT /{id}/password).
    """
    user = await _get_user(db, user_id)
    updates = body.model_dump(exclude_unset=True)

    if {"permission_override", "blocked_permissions"} & updates.keys():
        if not user_can(admin, "users:permissions"):
            raise HTTPException(status_code=403, detail="Missing permissions: users:permissions")
        _check_permission_lists(
            updates.get("permission_override"), updates.get("blocked_permissions")
        )
        for key in ("permission_override", "blocked_permissions"):
            if key in updates and updates[key] is None:
                updates[key] = []

    if "email" in updates and updates["email"]:
        updates["email"] = updates["email"].lower()
        other = await get_user_by_email(db, updates["email"])
        if other and other.id != user.id:
            raise HTTPException(status_code=400, detail="Email already registered")

    if "role_id" in updates and updates["role_id"] != user.role_id:
        role = await db.get(Role, updates["role_id"])
        if not role:
            raise HTTPException(status_code=400, detail="Invalid role")
        if role.user_type != user.user_type:
            raise HTTPException(status_code=400, detail="Role does not match user type")
        user.role = role

    if updates.get("status") and updates["status"] != "active" and user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    for key, value in updates.items():
        setattr(user, key, value)
    await db.flush()

    if user.status != "active":
        await TokenRevocation.revoke_all_user_tokens(user.id)

    await log_activity(
        db, admin, action="user_updated", entity_type="user",
        entity_id=user.id, entity_code=user.email,
        summary=f"Updated {user.full_name}: {', '.join(sorted(updates))}",
    )
    return build_user_out(user)


# ── DELETE /api/users/{id} ───────────────────────────────────

@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:write")),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await _get_user(db, user_id)

    await log_activity(
        db, admin, action="deleted", entity_type="user",
        entity_id=user.id, entity_code=user.email,
        summary=f"Deleted user {user.full_name}",
    )
    await db.delete(user)
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user_id)
    return Response(status_code=204)


# ── PUT /api/users/{id}/toggle-status ────────────────────────

@router.put("/{user_id}/toggle-status", response_model=UserOut)
async def toggle_user_status(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:write")),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    user = await _get_user(db, user_id)

    user.status = "inactive" if user.status == "active" else "active"
    await db.flush()
    if user.status == "inactive":
        await TokenRevocation.revoke_all_user_tokens(user.id)

    await log_activity(
        db, admin,
        action="user_deactivated" if user.status == "inactive" else "user_activated",
        entity_type="user", entity_id=user.id, entity_code=user.email,
    )
    return build_user_out(user)


# ── PUT /api/users/{id}/password ─────────────────────────────

@router.put("/{user_id}/password", response_model=MessageResponse)
async def set_user_password(
    user_id: str,
    body: SetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:write")),
):
    user = await _get_user(db, user_id)
    user.hashed_password = hash_password(body.password)
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user.id)

    await log_activity(
        db, admin, action="password_changed", entity_type="user",
        entity_id=user.id, entity_code=user.email,
        summary=f"Reset password for {user.full_name}",
    )
    return MessageResponse(message="Password updated")

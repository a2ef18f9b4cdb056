"""Role management router.

Endpoints:
    GET    /api/roles/permissions   Permission catalogue
    GET    /api/roles/              List roles (with user counts)
    GET    /api/roles/{id}          Detail
    POST   /api/roles/              Create custom role
    PUT    /api/roles/{id}          Update (system roles need `*`)
    DELETE /api/roles/{id}          Delete (system roles need `*`; must be unused)
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_permission, user_permissions
from app.auth.permissions import ALL_PERMISSIONS, has_full_access, unknown_permissions
from app.database import get_db
from app.middleware.exceptions import PermissionDeniedError, ResourceNotFoundError
from app.models.role import Role
from app.models.user import User
from app.schemas.role import RoleCreate, RoleOut, RoleUpdate
from app.utils.activity import log_activity

router = APIRouter()


async def _user_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(select(User.role_id, func.count()).group_by(User.role_id))
    return {role_id: count for role_id, count in result.all()}


async def _get_role(db: AsyncSession, role_id: str) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise ResourceNotFoundError("Role")
    return role


def _role_out(role: Role, user_count: int = 0) -> RoleOut:
    out = RoleOut.model_validate(role)
    out.user_count = user_count
    return out


def _guard_system_role(role: Role, user: User) -> None:
    if role.is_system and not has_full_access(user_permissions(user)):
        raise PermissionDeniedError("System roles can only be changed by a super admin")


def _validate_permissions(perms: list[str]) -> None:
    bad = unknown_permissions(perms)
    if bad:
        raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(bad)}")


@router.get("/permissions", response_model=list[str])
async def list_permissions(_user: User = Depends(require_permission("roles:read"))):
    return ALL_PERMISSIONS


@router.get("/", response_model=list[RoleOut])
async def list_roles(
    user_type: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("roles:read")),
):
    query = select(Role).order_by(Role.is_system.desc(), Role.name)
    if user_type:
        query = query.where(Role.user_type == user_type)
    result = await db.execute(query)
    counts = await _user_counts(db)
    return [_role_out(r, counts.get(r.id, 0)) for r in result.scalars().all()]


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("roles:read")),
):
    role = await _get_role(db, role_id)
    counts = await _user_counts(db)
    return _role_out(role, counts.get(role.id, 0))


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("roles:write")),
):
    existing = await db.execute(select(Role).where(Role.name == body.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Role name already exists")
    _validate_permissions(body.permissions)
    if "*" in body.permissions and not has_full_access(user_permissions(user)):
        raise HTTPException(status_code=403, detail="Only a super admin can grant full access")

    role = Role(**body.model_dump(), is_system=False)
    db.add(role)
    await db.flush()

    await log_activity(
        db, user, action="created", entity_type="role",
        entity_id=role.id, entity_code=role.name,
        summary=f"Created role {role.display_name}",
    )
    return _role_out(role)


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: str,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("roles:write")),
):
    role = await _get_role(db, role_id)
    _guard_system_role(role, user)

    updates = body.model_dump(exclude_unset=True)
    if updates.get("permissions") is not None:
        _validate_permissions(updates["permissions"])
        if "*" in updates["permissions"] and not has_full_access(user_permissions(user)):
            raise HTTPException(status_code=403, detail="Only a super admin can grant full access")

    for key, value in updates.items():
        if value is not None:
            setattr(role, key, value)
    await db.flush()

    await log_activity(
        db, user, action="updated", entity_type="role",
        entity_id=role.id, entity_code=role.name,
        summary=f"Updated role {role.display_name}",
    )
    counts = await _user_counts(db)
    return _role_out(role, counts.get(role.id, 0))


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("roles:write")),
):
    role = await _get_role(db, role_id)
    _guard_system_role(role, user)

    counts = await _user_counts(db)
    if counts.get(role.id, 0):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete role: {counts[role.id]} user(s) still assigned",
        )

    await log_activity(
        db, user, action="deleted", entity_type="role",
        entity_id=role.id, entity_code=role.name,
        summary=f"Deleted role {role.display_name}",
    )
    await db.delete(role)
    await db.flush()
    return Response(status_code=204)

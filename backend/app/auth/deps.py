"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user            → decode JWT, load user from DB, return User
  get_optional_user           → same, but None for anonymous callers
  require_role(...)           → restrict to specific role names
  require_permission(...)     → caller must hold ALL listed permissions
  require_any_permission(...) → caller must hold at least one
  own_client_scope(...)       → client_id the caller is restricted to, or None
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import decode_token
from app.auth.permissions import has_permission
from app.auth.revocation import TokenRevocation
from app.database import get_db
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    Also stashes the decoded payload on the user object as `_token_payload`
    and the raw token as `_token` so downstream deps can read claims
    without re-decoding.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if await TokenRevocation.is_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Password change / deactivation invalidates earlier tokens
    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.unique().scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    user._token_payload = payload  # type: ignore[attr-defined]
    user._token = token  # type: ignore[attr-defined]
    return user


async def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if not token:
        return None
    return await get_current_user(token, db)


def user_permissions(user: User) -> list[str]:
    payload: dict = getattr(user, "_token_payload", {})
    return payload.get("permissions", [])


def user_can(user: User, perm: str) -> bool:
    return has_permission(user_permissions(user), perm)


# ── Role-based access control ───────────────────────────────

def require_role(*roles: str):
    """Dependency factory — restrict to one or more role names.

    Usage:
        @router.get("/company")
        async def company(user: User = Depends(require_role("super_admin"))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if not user.role or user.role.name not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return user

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: str):
    """Dependency factory — restrict to users who hold ALL listed permissions.

    Reads permissions from the JWT claims (embedded at login), so this is
    a zero-DB-hit check for the hot path.

    Usage:
        @router.post("/")
        async def create_shipment(user: User = Depends(require_permission("shipments:write"))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        held = user_permissions(user)
        missing = [p for p in perms if not has_permission(held, p)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return user

    return _check


def require_any_permission(*perms: str):
    """Dependency factory — restrict to users who hold at least one permission.

    Typically pairs a full read permission with its `:own` variant, e.g.
    require_any_permission("shipments:read", "shipments:read:own").
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        held = user_permissions(user)
        if not any(has_permission(held, p) for p in perms):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(perms)}",
            )
        return user

    return _check


# ── Own-scope helpers ───────────────────────────────────────

def own_client_scope(user: User, resource: str) -> str | None:
    """Return the client_id a caller is limited to for `resource`, or None.

    A caller holding `<resource>:read` sees everything (None). A caller
    holding only `<resource>:read:own` is scoped to their client; one with
    no client binding gets an id that matches nothing.
    """
    if user_can(user, f"{resource}:read"):
        return None
    return user.client_id or ""


def ensure_own_client(user: User, resource: str, client_id: str | None) -> None:
    """403 if an own-scoped caller asks for another client's record."""
    scope = own_client_scope(user, resource)
    if scope is not None and client_id != scope:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"

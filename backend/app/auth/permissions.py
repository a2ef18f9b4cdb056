"""Granular permission system for CargoFlow RBAC.

Design:
  - Each role stores its permission list in the DB (`Role.permissions`).
    System roles are seeded from SYSTEM_ROLES below.
  - Admins can adjust individual users on top of their role:
      `User.permission_override`  → extra grants
      `User.blocked_permissions`  → hard denials (always win)
  - `resolve_permissions(role_permissions, override, blocked)` computes the
    effective set, which is embedded in the JWT so most checks are
    token-only (no DB roundtrip).

Permission naming: `<resource>:<action>[:own]`
  The `:own` suffix scopes read access to records tied to the caller's
  own client company. `*` grants everything.
"""

from __future__ import annotations

WILDCARD = "*"


# ── All known permissions ───────────────────────────────────

ALL_PERMISSIONS: list[str] = [
    # Team management
    "users:read",
    "users:write",
    "users:permissions",      # edit per-user overrides / blocks
    "roles:read",
    "roles:write",

    # Operations
    "shipments:read",
    "shipments:write",
    "shipments:read:own",
    "containers:read",
    "containers:write",
    "clients:read",
    "clients:write",
    "suppliers:read",
    "suppliers:write",
    "tracking:read",
    "tracking:write",
    "tracking:read:own",

    # Reports
    "reports:read",
    "reports:write",

    # Billing
    "invoices:read",
    "invoices:write",
    "invoices:read:own",

    # Support desk
    "support:read",
    "support:write",
    "support:read:own",

    # Financials (strictly restricted)
    "financials:read",
    "financials:write",

    # Admin settings
    "settings:read",
    "settings:write",

    # Self-service
    "profile:read",
    "profile:write",
]


# ── System roles ────────────────────────────────────────────

_ADMIN_EXCLUDED = {
    "users:permissions",
    "shipments:read:own",
    "tracking:read:own",
    "invoices:read:own",
    "support:read:own",
    "profile:read",
    "profile:write",
}

SYSTEM_ROLES: dict[str, dict] = {
    "super_admin": {
        "display_name": "Super Administrator",
        "description": "Full access to every feature, including system settings",
        "user_type": "admin",
        "permissions": [WILDCARD],
    },
    "admin": {
        "display_name": "Administrator",
        "description": "Manages operations, finance and the team",
        "user_type": "admin",
        "permissions": [p for p in ALL_PERMISSIONS if p not in _ADMIN_EXCLUDED],
    },
    "operations_manager": {
        "display_name": "Operations Manager",
        "description": "Runs shipments, containers and tracking",
        "user_type": "admin",
        "permissions": [
            "shipments:read", "shipments:write",
            "containers:read", "containers:write",
            "tracking:read", "tracking:write",
            "suppliers:read",
            "clients:read",
            "support:read", "support:write",
        ],
    },
    "client_user": {
        "display_name": "Client User",
        "description": "Client portal access to the company's own records",
        "user_type": "client",
        "permissions": [
            "shipments:read:own",
            "tracking:read:own",
            "invoices:read:own",
            "support:read:own",
            "support:write",
            "profile:read",
            "profile:write",
        ],
    },
}


# ── Resolution ──────────────────────────────────────────────

def unknown_permissions(perms: list[str]) -> list[str]:
    """Return the entries of `perms` that are not in the catalogue."""
    known = set(ALL_PERMISSIONS) | {WILDCARD}
    return [p for p in perms if p not in known]


def resolve_permissions(
    role_permissions: list[str] | None,
    override: list[str] | None = None,
    blocked: list[str] | None = None,
) -> list[str]:
    """Compute effective permissions for a user.

    1. Start with the role's permissions plus every override grant.
    2. Remove every blocked permission.
    3. Return a sorted list (for stable JWT claims).

    A wildcard survives only when nothing is blocked; otherwise it is
    expanded to the catalogue so the block can take effect.
    """
    base = set(role_permissions or []) | set(override or [])
    blocked_set = set(blocked or [])

    if WILDCARD in base:
        if not blocked_set:
            return [WILDCARD]
        base.discard(WILDCARD)
        base.update(ALL_PERMISSIONS)

    base -= blocked_set
    return sorted(base)


def has_permission(user_permissions: list[str] | set[str], required: str) -> bool:
    """Check whether a permission set satisfies a requirement."""
    return WILDCARD in user_permissions or required in user_permissions


def has_full_access(user_permissions: list[str] | set[str]) -> bool:
    return WILDCARD in user_permissions

"""Tests for team management, roles, permission resolution and the overdue sweep."""

from datetime import date, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.auth.permissions import (
    ALL_PERMISSIONS,
    SYSTEM_ROLES,
    WILDCARD,
    has_permission,
    resolve_permissions,
    unknown_permissions,
)
from app.models.invoice import Invoice
from app.services.scheduler import _seconds_until, mark_overdue_invoices


def user_payload(role_id: str, **overrides) -> dict:
    payload = {
        "email": "New.Hire@Example.com",
        "password": "welcome-aboard",
        "first_name": "New",
        "last_name": "Hire",
        "role_id": role_id,
    }
    payload.update(overrides)
    return payload


@pytest.mark.unit
class TestPermissionResolution:

    def test_role_plus_override(self):
        assert resolve_permissions(["shipments:read"], ["reports:read"]) == [
            "reports:read", "shipments:read",
        ]

    def test_block_wins(self):
        assert resolve_permissions(
            ["shipments:read", "shipments:write"], ["shipments:write"], ["shipments:write"],
        ) == ["shipments:read"]

    def test_wildcard_kept_without_blocks(self):
        assert resolve_permissions([WILDCARD]) == [WILDCARD]

    def test_wildcard_expanded_when_blocked(self):
        effective = resolve_permissions([WILDCARD], blocked=["financials:write"])
        assert WILDCARD not in effective
        assert "financials:write" not in effective
        assert len(effective) == len(ALL_PERMISSIONS) - 1

    def test_has_permission(self):
        assert has_permission([WILDCARD], "anything:at_all")
        assert has_permission(["shipments:read:own"], "shipments:read:own")
        assert not has_permission(["shipments:read:own"], "shipments:read")

    def test_unknown(self):
        assert unknown_permissions(["shipments:read", "*", "launch:missiles"]) == ["launch:missiles"]

    def test_system_roles_use_catalogue(self):
        for spec in SYSTEM_ROLES.values():
            assert unknown_permissions(spec["permissions"]) == []
        assert "financials:read" not in SYSTEM_ROLES["operations_manager"]["permissions"]


@pytest.mark.integration
@pytest.mark.asyncio
class TestUsers:

    async def test_create_staff_user(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.post(
            "/api/users/", json=user_payload(roles["operations_manager"].id), headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.hire@example.com"
        assert data["role"] == "operations_manager"
        assert data["client_id"] is None
        assert "tracking:write" in data["permissions"]

    async def test_create_client_user(self, client: AsyncClient, auth_headers: dict, roles, acme):
        response = await client.post(
            "/api/users/",
            json=user_payload(roles["client_user"].id, user_type="client", client_id=acme.id),
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["client_id"] == acme.id

    async def test_role_must_match_user_type(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.post(
            "/api/users/", json=user_payload(roles["client_user"].id), headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Role does not match user type"

    async def test_duplicate_email(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.post(
            "/api/users/", json=user_payload(roles["admin"].id, email="root@example.com"), headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email already registered"

    async def test_overrides_need_permission(self, client: AsyncClient, staff_headers: dict, roles):
        response = await client.post(
            "/api/users/",
            json=user_payload(roles["operations_manager"].id, permission_override=["reports:read"]),
            headers=staff_headers,
        )
        assert response.status_code == 403

    async def test_unknown_override_rejected(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.post(
            "/api/users/",
            json=user_payload(roles["operations_manager"].id, blocked_permissions=["fly:plane"]),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unknown permissions: fly:plane"

    async def test_blocked_permission_applies_at_login(
        self, client: AsyncClient, auth_headers: dict, make_user
    ):
        ops = await make_user("operations_manager", email="blocked@example.com")
        response = await client.put(
            f"/api/users/{ops.id}",
            json={"blocked_permissions": ["tracking:write"]},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert "tracking:write" not in response.json()["permissions"]

        login = await client.post(
            "/api/auth/login", json={"email": "blocked@example.com", "password": "password123"},
        )
        assert "tracking:write" not in login.json()["user"]["permissions"]

    async def test_cannot_deactivate_self(self, client: AsyncClient, auth_headers: dict, admin_user):
        response = await client.put(f"/api/users/{admin_user.id}/toggle-status", headers=auth_headers)
        assert response.status_code == 400

        response = await client.delete(f"/api/users/{admin_user.id}", headers=auth_headers)
        assert response.json()["error"]["message"] == "You cannot delete your own account"

    async def test_toggle_status_locks_out(
        self, client: AsyncClient, auth_headers: dict, make_user, token_headers
    ):
        ops = await make_user("operations_manager", email="leaver@example.com")
        ops_headers = token_headers(ops)

        response = await client.put(f"/api/users/{ops.id}/toggle-status", headers=auth_headers)
        assert response.json()["status"] == "inactive"

        response = await client.get("/api/auth/me", headers=ops_headers)
        assert response.status_code == 401

    async def test_list_and_search(self, client: AsyncClient, auth_headers: dict, portal_user):
        response = await client.get("/api/users/?user_type=client", headers=auth_headers)
        assert [u["email"] for u in response.json()["items"]] == ["buyer@acme.example.com"]

        response = await client.get("/api/users/?search=root", headers=auth_headers)
        assert response.json()["total"] == 1

    async def test_admin_sets_password(self, client: AsyncClient, auth_headers: dict, portal_user):
        response = await client.put(
            f"/api/users/{portal_user.id}/password", json={"password": "short"}, headers=auth_headers,
        )
        assert response.status_code == 422

        response = await client.put(
            f"/api/users/{portal_user.id}/password",
            json={"password": "brand-new-secret"},
            headers=auth_headers,
        )
        assert response.json()["message"] == "Password updated"

        login = await client.post(
            "/api/auth/login",
            json={"email": "buyer@acme.example.com", "password": "brand-new-secret"},
        )
        assert login.status_code == 200

    async def test_portal_user_cannot_manage_team(self, client: AsyncClient, portal_headers: dict):
        response = await client.get("/api/users/", headers=portal_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestRoles:

    async def test_list_with_counts(self, client: AsyncClient, auth_headers: dict, portal_user):
        response = await client.get("/api/roles/", headers=auth_headers)
        counts = {r["name"]: r["user_count"] for r in response.json()}
        assert counts["super_admin"] == 1
        assert counts["client_user"] == 1
        assert counts["admin"] == 0

    async def test_catalogue(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/roles/permissions", headers=auth_headers)
        assert response.json() == ALL_PERMISSIONS

    async def test_custom_role_lifecycle(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/roles/",
            json={
                "name": "accountant",
                "display_name": "Accountant",
                "permissions": ["financials:read", "invoices:read"],
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        role = response.json()
        assert role["is_system"] is False

        response = await client.put(
            f"/api/roles/{role['id']}",
            json={"permissions": ["financials:read", "financials:write"]},
            headers=auth_headers,
        )
        assert response.json()["permissions"] == ["financials:read", "financials:write"]

        response = await client.delete(f"/api/roles/{role['id']}", headers=auth_headers)
        assert response.status_code == 204

    async def test_invalid_role_name(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/roles/", json={"name": "Bad Name", "display_name": "Bad"}, headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_only_super_admin_grants_wildcard(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            "/api/roles/",
            json={"name": "godmode", "display_name": "God", "permissions": ["*"]},
            headers=staff_headers,
        )
        assert response.status_code == 403

    async def test_system_role_protected(self, client: AsyncClient, staff_headers: dict, roles):
        response = await client.put(
            f"/api/roles/{roles['operations_manager'].id}",
            json={"display_name": "Ops"},
            headers=staff_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "System roles can only be changed by a super admin"

    async def test_role_in_use_cannot_be_deleted(self, client: AsyncClient, auth_headers: dict, roles, portal_user):
        response = await client.delete(f"/api/roles/{roles['client_user'].id}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete role: 1 user(s) still assigned"


@pytest.mark.integration
@pytest.mark.asyncio
class TestOverdueSweep:

    async def test_marks_only_sent_and_past_due(self, db_session, acme):
        today = date.today()
        for code, status, due in (
            ("INV-001", "sent", today - timedelta(days=1)),
            ("INV-002", "sent", today + timedelta(days=1)),
            ("INV-003", "draft", today - timedelta(days=10)),
            ("INV-004", "paid", today - timedelta(days=10)),
        ):
            db_session.add(Invoice(
                invoice_code=code,
                invoice_number=f"CCT-INV-{today.year}-0{code[-3:]}",
                client_id=acme.id,
                status=status,
                due_date=due,
                total=100,
            ))
        await db_session.commit()

        assert await mark_overdue_invoices(db_session) == 1
        await db_session.commit()

        rows = dict((await db_session.execute(
            select(Invoice.invoice_code, Invoice.status)
        )).all())
        assert rows == {"INV-001": "overdue", "INV-002": "sent", "INV-003": "draft", "INV-004": "paid"}

    async def test_second_run_is_a_noop(self, db_session, acme):
        db_session.add(Invoice(
            invoice_code="INV-001",
            invoice_number=f"CCT-INV-{date.today().year}-0001",
            client_id=acme.id,
            status="sent",
            due_date=date.today() - timedelta(days=5),
            total=100,
        ))
        await db_session.commit()

        assert await mark_overdue_invoices(db_session) == 1
        assert await mark_overdue_invoices(db_session) == 0


@pytest.mark.unit
class TestSchedule:

    def test_later_today(self):
        next_run, wait = _seconds_until(1, datetime(2026, 5, 1, 0, 30))
        assert next_run == datetime(2026, 5, 1, 1, 0)
        assert wait == 1800

    def test_tomorrow_once_passed(self):
        next_run, _ = _seconds_until(1, datetime(2026, 5, 1, 1, 0))
        assert next_run == datetime(2026, 5, 2, 1, 0)

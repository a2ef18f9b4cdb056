"""Tests for key/value settings, company info, preferences and profiles."""

import pytest
from httpx import AsyncClient


@pytest.mark.integration
@pytest.mark.asyncio
class TestKeyValueSettings:

    async def test_anonymous_sees_public_only(self, client: AsyncClient, roles):
        response = await client.get("/api/settings/")
        keys = {s["key"] for s in response.json()}
        assert keys == {"SYSTEM_PREFERENCES"}

    async def test_staff_sees_everything(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/settings/", headers=auth_headers)
        assert "INVOICE_TAX_RATE" in {s["key"] for s in response.json()}

    async def test_category_filter(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/settings/?category=billing", headers=auth_headers)
        assert [s["key"] for s in response.json()] == ["INVOICE_TAX_RATE"]

    async def test_private_key_hidden_from_anonymous(self, client: AsyncClient, roles):
        response = await client.get("/api/settings/invoice_tax_rate")
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Setting not found"

    async def test_upsert_normalises_key_and_infers_type(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/settings/max_upload_mb",
            json={"value": 25, "category": "general", "is_public": True},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["key"] == "MAX_UPLOAD_MB"
        assert data["type"] == "number"

        response = await client.get("/api/settings/MAX_UPLOAD_MB")
        assert response.json()["value"] == 25

    async def test_upsert_rejects_unknown_category(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/settings/foo", json={"value": 1, "category": "misc"}, headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_upsert_requires_permission(self, client: AsyncClient, ops_headers: dict):
        response = await client.put("/api/settings/foo", json={"value": 1}, headers=ops_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestCompanyAndSystem:

    async def test_company_info_merge(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/settings/company",
            json={"company_phone": "+31 10 555 0100", "tax_id": "NL123"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["company_name"] == "CargoFlow Logistics"
        assert data["tax_id"] == "NL123"

        response = await client.get("/api/settings/company", headers=auth_headers)
        assert response.json()["company_phone"] == "+31 10 555 0100"

        # Saving company info keeps it out of the public key/value listing
        response = await client.get("/api/settings/COMPANY_INFO")
        assert response.status_code == 404

    async def test_company_info_validates_website(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/settings/company", json={"website": "not a url"}, headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_company_info_is_super_admin_only(self, client: AsyncClient, staff_headers: dict):
        response = await client.get("/api/settings/company", headers=staff_headers)
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Requires role: super_admin"

    async def test_system_preferences(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/settings/system", json={"currency": "EUR"}, headers=auth_headers,
        )
        assert response.json() == {
            "language": "English",
            "timezone": "UTC",
            "date_format": "DD/MM/YYYY",
            "currency": "EUR",
        }

        response = await client.put(
            "/api/settings/system", json={"date_format": "D.M.Y"}, headers=auth_headers,
        )
        assert response.status_code == 422


@pytest.mark.integration
@pytest.mark.asyncio
class TestPerUserSettings:

    async def test_notification_defaults_and_update(self, client: AsyncClient, portal_headers: dict):
        response = await client.get("/api/settings/notifications", headers=portal_headers)
        assert response.json()["email_notifications"] is True
        assert response.json()["newsletter"] is False

        response = await client.put(
            "/api/settings/notifications", json={"newsletter": True}, headers=portal_headers,
        )
        assert response.json()["newsletter"] is True
        assert response.json()["shipment_updates"] is True

    async def test_password_mismatch(self, client: AsyncClient, portal_headers: dict):
        response = await client.put(
            "/api/settings/password",
            json={
                "current_password": "password123",
                "new_password": "new-password-1",
                "confirm_password": "new-password-2",
            },
            headers=portal_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "New passwords do not match"

    async def test_own_export(self, client: AsyncClient, portal_headers: dict, acme, make_shipment):
        await make_shipment(acme)
        response = await client.get("/api/settings/export/me", headers=portal_headers)

        data = response.json()
        assert data["user"]["email"] == "buyer@acme.example.com"
        assert data["client"]["company_name"] == "Acme Imports"
        assert len(data["shipments"]) == 1
        assert data["invoices"] == []

    async def test_full_export(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        await make_shipment(acme)
        response = await client.get("/api/settings/export", headers=auth_headers)

        counts = response.json()["counts"]
        assert counts["clients"] == 1
        assert counts["shipments"] == 1
        assert counts["users"] == 1


@pytest.mark.integration
@pytest.mark.asyncio
class TestProfile:

    async def test_get_profile_includes_company(self, client: AsyncClient, portal_headers: dict, acme):
        response = await client.get("/api/profile/", headers=portal_headers)
        data = response.json()
        assert data["email"] == "buyer@acme.example.com"
        assert data["client"]["id"] == acme.id
        assert "email_notifications" in data["notification_preferences"]

    async def test_client_user_edits_company(self, client: AsyncClient, portal_headers: dict, acme):
        response = await client.put(
            "/api/profile/",
            json={"job_title": "Buyer", "trading_name": "Acme"},
            headers=portal_headers,
        )
        data = response.json()
        assert data["job_title"] == "Buyer"
        assert data["client"]["trading_name"] == "Acme"

    async def test_staff_profile_has_no_company(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/profile/", json={"company_name": "Ignored", "bio": "Ops lead"}, headers=auth_headers,
        )
        data = response.json()
        assert data["bio"] == "Ops lead"
        assert data["client"] is None

    async def test_email_taken(self, client: AsyncClient, portal_headers: dict, admin_user):
        response = await client.put(
            "/api/profile/", json={"email": admin_user.email}, headers=portal_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email is already in use"

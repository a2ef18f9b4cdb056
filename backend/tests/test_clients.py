"""Tests for client CRUD, stats and delete guards."""

import pytest
from httpx import AsyncClient


def client_payload(**overrides) -> dict:
    payload = {
        "company_name": "Initech Freight",
        "contact_first_name": "Peter",
        "contact_last_name": "Gibbons",
        "contact_email": "Peter@Initech.example.com",
        "contact_phone": "+1 (555) 010-2000",
        "address_city": "Austin",
        "address_country": "USA",
        "payment_terms": 45,
        "credit_limit": 10000,
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
@pytest.mark.asyncio
class TestClients:

    async def test_create_client(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/clients/", json=client_payload(), headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["client_code"] == "CLT-001"
        assert data["contact_email"] == "peter@initech.example.com"
        assert data["status"] == "active"

    async def test_codes_are_sequential(self, client: AsyncClient, auth_headers: dict):
        first = await client.post("/api/clients/", json=client_payload(), headers=auth_headers)
        second = await client.post(
            "/api/clients/",
            json=client_payload(company_name="Other", contact_email="other@example.com"),
            headers=auth_headers,
        )
        assert first.json()["client_code"] == "CLT-001"
        assert second.json()["client_code"] == "CLT-002"

    async def test_duplicate_email_rejected(self, client: AsyncClient, auth_headers: dict):
        await client.post("/api/clients/", json=client_payload(), headers=auth_headers)
        response = await client.post(
            "/api/clients/",
            json=client_payload(company_name="Copycat", contact_email="peter@initech.example.com"),
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Client with this email already exists"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("contact_email", "not-an-email"),
            ("contact_phone", "call me"),
            ("status", "archived"),
            ("payment_terms", 7),
            ("website", "initech"),
            ("company_name", ""),
        ],
    )
    async def test_validation(self, client: AsyncClient, auth_headers: dict, field, value):
        response = await client.post(
            "/api/clients/", json=client_payload(**{field: value}), headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_list_filters_and_search(self, client: AsyncClient, auth_headers: dict, make_client):
        await make_client("Acme Imports")
        await make_client("Globex Trading", status="inactive")

        response = await client.get("/api/clients/?status=active", headers=auth_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["company_name"] == "Acme Imports"

        response = await client.get("/api/clients/?search=glob", headers=auth_headers)
        assert [c["company_name"] for c in response.json()["items"]] == ["Globex Trading"]

    async def test_pagination(self, client: AsyncClient, auth_headers: dict, make_client):
        for i in range(3):
            await make_client(f"Client {i}")

        response = await client.get("/api/clients/?limit=2&offset=0", headers=auth_headers)
        data = response.json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["limit"] == 2

    async def test_get_unknown(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/clients/missing", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Client not found"

    async def test_update(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.put(
            f"/api/clients/{acme.id}",
            json={"status": "suspended", "notes": "Late payer"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "suspended"
        assert response.json()["notes"] == "Late payer"

    async def test_stats(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        await make_shipment(acme, status="in_transit")
        await make_shipment(acme, status="delivered")

        response = await client.get(f"/api/clients/{acme.id}/stats", headers=auth_headers)
        data = response.json()
        assert data["shipments"] == {"total": 2, "active": 1}
        assert data["invoices"] == {"total": 0, "pending": 0}

    async def test_delete_guarded_by_shipments(
        self, client: AsyncClient, auth_headers: dict, acme, make_shipment
    ):
        await make_shipment(acme)
        response = await client.delete(f"/api/clients/{acme.id}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete client with 1 shipment(s)"

    async def test_delete(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.delete(f"/api/clients/{acme.id}", headers=auth_headers)
        assert response.status_code == 204
        response = await client.get(f"/api/clients/{acme.id}", headers=auth_headers)
        assert response.status_code == 404

    async def test_operations_manager_is_read_only(self, client: AsyncClient, ops_headers: dict, acme):
        assert (await client.get("/api/clients/", headers=ops_headers)).status_code == 200
        response = await client.post("/api/clients/", json=client_payload(), headers=ops_headers)
        assert response.status_code == 403

    async def test_active_picker(self, client: AsyncClient, auth_headers: dict, make_client):
        await make_client("Bravo")
        await make_client("Alpha")
        await make_client("Dormant", status="inactive")

        response = await client.get("/api/clients/active/list", headers=auth_headers)
        assert [c["company_name"] for c in response.json()] == ["Alpha", "Bravo"]

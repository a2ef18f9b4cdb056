"""Tests for supplier and container management."""

import pytest
from httpx import AsyncClient


def supplier_payload(**overrides) -> dict:
    payload = {
        "name": "Blue Anchor Lines",
        "service_types": ["ocean_freight", "container"],
        "contact_first_name": "Ana",
        "contact_last_name": "Silva",
        "contact_email": "Ops@BlueAnchor.example.com",
        "contact_phone": "+351 21 000 0000",
        "address_city": "Lisbon",
        "address_country": "Portugal",
        "contracts": [
            {"contract_number": "BA-1", "status": "active", "value": 50000},
            {"contract_number": "BA-0", "status": "expired"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_supplier(client: AsyncClient, auth_headers: dict):
    async def _create(**overrides) -> dict:
        response = await client.post("/api/suppliers/", json=supplier_payload(**overrides), headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.mark.integration
@pytest.mark.asyncio
class TestSuppliers:

    async def test_create(self, create_supplier):
        data = await create_supplier()
        assert data["supplier_code"] == "SUP-001"
        assert data["contact_email"] == "ops@blueanchor.example.com"
        assert data["status"] == "pending"
        assert data["active_contracts"] == 1

    async def test_duplicate_email(self, client: AsyncClient, auth_headers: dict, create_supplier):
        await create_supplier()
        response = await client.post(
            "/api/suppliers/",
            json=supplier_payload(name="Clone", contact_email="ops@blueanchor.example.com"),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Supplier with this email already exists"

    @pytest.mark.parametrize(
        "field,value",
        [("service_types", []), ("service_types", ["teleport"]), ("rating", 6), ("payment_terms", "net_7")],
    )
    async def test_validation(self, client: AsyncClient, auth_headers: dict, field, value):
        response = await client.post(
            "/api/suppliers/", json=supplier_payload(**{field: value}), headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_filter_by_service(self, client: AsyncClient, auth_headers: dict, create_supplier):
        await create_supplier()
        await create_supplier(
            name="Dock Brokers", service_types=["customs"], contact_email="desk@dock.example.com",
        )

        response = await client.get("/api/suppliers/?service_type=customs", headers=auth_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == "Dock Brokers"

    async def test_by_service_lists_active_only(self, client: AsyncClient, auth_headers: dict, create_supplier):
        await create_supplier(status="active")
        await create_supplier(name="Sleepy Lines", contact_email="zz@sleepy.example.com")

        response = await client.get("/api/suppliers/by-service/ocean_freight", headers=auth_headers)
        assert [s["name"] for s in response.json()] == ["Blue Anchor Lines"]

        response = await client.get("/api/suppliers/by-service/teleport", headers=auth_headers)
        assert response.status_code == 400

    async def test_update_recounts_contracts(self, client: AsyncClient, auth_headers: dict, create_supplier):
        supplier = await create_supplier()
        response = await client.put(
            f"/api/suppliers/{supplier['id']}",
            json={"contracts": [{"contract_number": "BA-2", "status": "active"}] * 3},
            headers=auth_headers,
        )
        assert response.json()["active_contracts"] == 3

    async def test_delete_guarded_by_shipments(
        self, client: AsyncClient, auth_headers: dict, create_supplier, acme, make_shipment
    ):
        supplier = await create_supplier()
        await make_shipment(acme, supplier_id=supplier["id"])

        response = await client.delete(f"/api/suppliers/{supplier['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete supplier with 1 shipment(s)"

    async def test_operations_manager_reads_only(self, client: AsyncClient, ops_headers: dict):
        assert (await client.get("/api/suppliers/", headers=ops_headers)).status_code == 200
        response = await client.post("/api/suppliers/", json=supplier_payload(), headers=ops_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestContainers:

    async def test_create_normalises_number(self, client: AsyncClient, ops_headers: dict):
        response = await client.post(
            "/api/containers/",
            json={"container_number": " mscu9988776 ", "type": "40ft_high_cube"},
            headers=ops_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["container_code"] == "CNT-001"
        assert data["container_number"] == "MSCU9988776"
        assert data["status"] == "available"
        assert data["condition"] == "good"

    async def test_duplicate_number(self, client: AsyncClient, ops_headers: dict, make_container):
        await make_container("MSCU9988776")
        response = await client.post(
            "/api/containers/",
            json={"container_number": "MSCU9988776", "type": "20ft_standard"},
            headers=ops_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Container number already exists"

    async def test_invalid_type(self, client: AsyncClient, ops_headers: dict):
        response = await client.post(
            "/api/containers/",
            json={"container_number": "MSCU0000001", "type": "60ft_mega"},
            headers=ops_headers,
        )
        assert response.status_code == 422

    async def test_stats(self, client: AsyncClient, ops_headers: dict, make_container):
        await make_container("MSCU0000001")
        await make_container("MSCU0000002", status="in_use")
        await make_container("MSCU0000003", status="damaged", condition="poor", type="20ft_standard")

        response = await client.get("/api/containers/stats", headers=ops_headers)
        data = response.json()
        assert data["total"] == 3
        assert data["available"] == 1
        assert data["in_use"] == 1
        assert data["damaged"] == 1
        assert data["type_breakdown"] == {"40ft_standard": 2, "20ft_standard": 1}
        assert data["condition_breakdown"] == {"good": 2, "poor": 1}

    async def test_available_by_type(self, client: AsyncClient, ops_headers: dict, make_container):
        await make_container("MSCU0000001")
        await make_container("MSCU0000002", type="20ft_standard")
        await make_container("MSCU0000003", status="maintenance")

        response = await client.get(
            "/api/containers/available?container_type=20ft_standard", headers=ops_headers,
        )
        assert [c["container_number"] for c in response.json()] == ["MSCU0000002"]

        response = await client.get("/api/containers/available", headers=ops_headers)
        assert len(response.json()) == 2

    async def test_delete_guards(
        self, client: AsyncClient, ops_headers: dict, make_container, acme, make_shipment
    ):
        busy = await make_container("MSCU0000001", status="in_use")
        response = await client.delete(f"/api/containers/{busy.id}", headers=ops_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete a container that is in use"

        used = await make_container("MSCU0000002")
        await make_shipment(acme, status="delivered", container_id=used.id)
        response = await client.delete(f"/api/containers/{used.id}", headers=ops_headers)
        assert response.json()["error"]["message"] == "Cannot delete container linked to 1 shipment(s)"

        spare = await make_container("MSCU0000003")
        response = await client.delete(f"/api/containers/{spare.id}", headers=ops_headers)
        assert response.status_code == 204

    async def test_portal_user_has_no_access(self, client: AsyncClient, portal_headers: dict):
        response = await client.get("/api/containers/", headers=portal_headers)
        assert response.status_code == 403

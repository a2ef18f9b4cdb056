"""Tests for shipment CRUD, container reservation and own-client scoping."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from app.models.container import Container
from app.models.invoice import Invoice


def shipment_payload(client_id: str, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "origin_port": "Shanghai",
        "origin_country": "China",
        "destination_port": "Rotterdam",
        "destination_country": "Netherlands",
        "cargo_description": "Electronics",
        "cargo_weight": 12000,
        "total_cost": 4500,
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
@pytest.mark.asyncio
class TestShipmentCrud:

    async def test_create(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.post(
            "/api/shipments/", json=shipment_payload(acme.id), headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["shipment_code"] == "SHP-001"
        assert data["tracking_number"] == f"CCT{date.today().year}001"
        assert data["status"] == "pending"
        assert data["booking_date"] == date.today().isoformat()
        assert data["client_name"] == "Acme Imports"

    async def test_create_unknown_client(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.post(
            "/api/shipments/", json=shipment_payload("missing"), headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Client not found"

    async def test_unknown_id(self, client: AsyncClient, auth_headers: dict, roles):
        response = await client.get("/api/shipments/nope", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == {"code": "RESOURCE_NOT_FOUND", "message": "Shipment not found"}

    async def test_eta_before_departure_rejected(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.post(
            "/api/shipments/",
            json=shipment_payload(
                acme.id,
                departure_date=date.today().isoformat(),
                estimated_arrival=(date.today() - timedelta(days=1)).isoformat(),
            ),
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_invalid_status_rejected(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.post(
            "/api/shipments/", json=shipment_payload(acme.id, status="lost"), headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_list_filter_by_status(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        await make_shipment(acme, status="in_transit")
        await make_shipment(acme, status="pending")

        response = await client.get("/api/shipments/?status=in_transit", headers=auth_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["status"] == "in_transit"

    async def test_update_final_shipment_rejected(
        self, client: AsyncClient, auth_headers: dict, acme, make_shipment
    ):
        shipment = await make_shipment(acme, status="delivered")
        response = await client.put(
            f"/api/shipments/{shipment.id}", json={"notes": "too late"}, headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot update a delivered shipment"

    async def test_cancel(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        shipment = await make_shipment(acme)
        response = await client.put(f"/api/shipments/{shipment.id}/cancel", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = await client.put(f"/api/shipments/{shipment.id}/cancel", headers=auth_headers)
        assert response.status_code == 400

    async def test_delete_guarded_by_invoices(
        self, client: AsyncClient, auth_headers: dict, acme, make_shipment, db_session
    ):
        shipment = await make_shipment(acme)
        db_session.add(Invoice(
            invoice_code="INV-001",
            invoice_number="CCT-INV-2026-0001",
            client_id=acme.id,
            shipment_id=shipment.id,
            due_date=date.today() + timedelta(days=30),
            total=100,
        ))
        await db_session.commit()

        response = await client.delete(f"/api/shipments/{shipment.id}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete shipment with 1 invoice(s)"

    async def test_stats(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        await make_shipment(
            acme, status="in_transit",
            estimated_arrival=date.today() - timedelta(days=2),
        )
        await make_shipment(acme, status="delivered")
        await make_shipment(acme, status="cancelled")

        response = await client.get("/api/shipments/stats", headers=auth_headers)
        data = response.json()
        assert data["total"] == 3
        assert data["active"] == 1
        assert data["delivered"] == 1
        assert data["delayed"] == 1

    async def test_qr_code(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        shipment = await make_shipment(acme)
        response = await client.get(f"/api/shipments/{shipment.id}/qr", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert b"<svg" in response.content


@pytest.mark.integration
@pytest.mark.asyncio
class TestContainerReservation:

    async def test_create_reserves_container(
        self, client: AsyncClient, auth_headers: dict, acme, make_container, db_session
    ):
        container = await make_container()
        response = await client.post(
            "/api/shipments/",
            json=shipment_payload(acme.id, container_id=container.id),
            headers=auth_headers,
        )
        assert response.status_code == 201

        reserved = await db_session.get(Container, container.id)
        assert reserved.status == "in_use"
        assert reserved.current_shipment_id == response.json()["id"]

    async def test_unavailable_container_rejected(
        self, client: AsyncClient, auth_headers: dict, acme, make_container
    ):
        container = await make_container(status="maintenance")
        response = await client.post(
            "/api/shipments/",
            json=shipment_payload(acme.id, container_id=container.id),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Container is not available"

    async def test_delivery_releases_container(
        self, client: AsyncClient, auth_headers: dict, acme, make_container, db_session
    ):
        container = await make_container()
        created = await client.post(
            "/api/shipments/",
            json=shipment_payload(acme.id, container_id=container.id),
            headers=auth_headers,
        )
        shipment_id = created.json()["id"]

        response = await client.put(
            f"/api/shipments/{shipment_id}", json={"status": "delivered"}, headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["actual_arrival"] == date.today().isoformat()

        released = await db_session.get(Container, container.id)
        assert released.status == "available"
        assert released.current_shipment_id is None

    async def test_container_swap(
        self, client: AsyncClient, auth_headers: dict, acme, make_container, db_session
    ):
        first = await make_container("MSCU0000001")
        second = await make_container("MSCU0000002")
        created = await client.post(
            "/api/shipments/",
            json=shipment_payload(acme.id, container_id=first.id),
            headers=auth_headers,
        )

        response = await client.put(
            f"/api/shipments/{created.json()['id']}",
            json={"container_id": second.id},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert (await db_session.get(Container, first.id)).status == "available"
        assert (await db_session.get(Container, second.id)).status == "in_use"


@pytest.mark.auth
@pytest.mark.asyncio
class TestOwnClientScope:

    async def test_portal_user_sees_only_own_shipments(
        self, client: AsyncClient, portal_headers: dict, acme, globex, make_shipment
    ):
        mine = await make_shipment(acme)
        await make_shipment(globex)

        response = await client.get("/api/shipments/", headers=portal_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == mine.id

    async def test_client_id_filter_cannot_widen_scope(
        self, client: AsyncClient, portal_headers: dict, acme, globex, make_shipment
    ):
        await make_shipment(globex)
        response = await client.get(f"/api/shipments/?client_id={globex.id}", headers=portal_headers)
        assert response.json()["total"] == 0

    async def test_other_clients_shipment_is_forbidden(
        self, client: AsyncClient, portal_headers: dict, globex, make_shipment
    ):
        theirs = await make_shipment(globex)
        response = await client.get(f"/api/shipments/{theirs.id}", headers=portal_headers)
        assert response.status_code == 403

    async def test_portal_user_cannot_create(self, client: AsyncClient, portal_headers: dict, acme):
        response = await client.post(
            "/api/shipments/", json=shipment_payload(acme.id), headers=portal_headers,
        )
        assert response.status_code == 403

    async def test_own_stats(self, client: AsyncClient, portal_headers: dict, acme, globex, make_shipment):
        await make_shipment(acme)
        await make_shipment(globex)
        await make_shipment(globex)

        response = await client.get("/api/shipments/stats", headers=portal_headers)
        assert response.json()["total"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
class TestErrorHandlers:

    async def test_concurrent_duplicate_is_reported(self):
        import json

        from sqlalchemy.exc import IntegrityError
        from starlette.requests import Request

        from app.middleware.exceptions import integrity_exception_handler

        request = Request({
            "type": "http", "method": "POST", "path": "/api/shipments/",
            "headers": [], "query_string": b"",
        })
        exc = IntegrityError(
            "INSERT INTO shipments", {}, Exception("UNIQUE constraint failed: shipments.tracking_number"),
        )
        response = await integrity_exception_handler(request, exc)

        assert response.status_code == 422
        assert json.loads(response.body)["error"] == {
            "code": "DUPLICATE_RECORD",
            "message": "A record with this value already exists",
        }

"""Tests for tracking updates, status propagation and the public tracking page."""

from datetime import date, datetime, timedelta

import pytest
from httpx import AsyncClient

from app.models.container import Container
from app.models.tracking_update import TrackingUpdate


async def add_update(db_session, shipment, status="in_transit", minutes_ago=0, **fields):
    update = TrackingUpdate(
        shipment_id=shipment.id,
        status=status,
        description=fields.pop("description", status.replace("_", " ")),
        timestamp=datetime.utcnow() - timedelta(minutes=minutes_ago),
        **fields,
    )
    db_session.add(update)
    await db_session.commit()
    return update


@pytest.mark.integration
@pytest.mark.asyncio
class TestTrackingWrites:

    async def test_update_moves_shipment_status(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment
    ):
        shipment = await make_shipment(acme)
        response = await client.post(
            "/api/tracking/",
            json={
                "shipment_id": shipment.id,
                "status": "departed_origin",
                "description": "Vessel left Shanghai",
                "location_name": "Yangshan Terminal",
            },
            headers=ops_headers,
        )

        assert response.status_code == 201
        assert response.json()["created_by_name"] == "Test Operations Manager"
        assert shipment.status == "in_transit"

    @pytest.mark.parametrize(
        "milestone,expected",
        [
            ("order_confirmed", "confirmed"),
            ("customs_clearance", "customs"),
            ("out_for_delivery", "out_for_delivery"),
            ("exception", "on_hold"),
        ],
    )
    async def test_status_mapping(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment, milestone, expected
    ):
        shipment = await make_shipment(acme)
        await client.post(
            "/api/tracking/",
            json={"shipment_id": shipment.id, "status": milestone, "description": "x"},
            headers=ops_headers,
        )
        assert shipment.status == expected

    async def test_delivered_releases_container(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment, make_container, db_session
    ):
        container = await make_container(status="in_use")
        shipment = await make_shipment(acme, status="in_transit", container_id=container.id)
        container.current_shipment_id = shipment.id
        await db_session.commit()

        response = await client.post(
            "/api/tracking/",
            json={"shipment_id": shipment.id, "status": "delivered", "description": "Signed for"},
            headers=ops_headers,
        )
        assert response.status_code == 201
        assert shipment.status == "delivered"
        assert shipment.actual_arrival == date.today()
        assert (await db_session.get(Container, container.id)).status == "available"

    async def test_cancelled_shipment_rejected(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment
    ):
        shipment = await make_shipment(acme, status="cancelled")
        response = await client.post(
            "/api/tracking/",
            json={"shipment_id": shipment.id, "status": "in_transit", "description": "x"},
            headers=ops_headers,
        )
        assert response.status_code == 400

    async def test_unknown_milestone_rejected(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment
    ):
        shipment = await make_shipment(acme)
        response = await client.post(
            "/api/tracking/",
            json={"shipment_id": shipment.id, "status": "teleported", "description": "x"},
            headers=ops_headers,
        )
        assert response.status_code == 422

    async def test_notify_client(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment, monkeypatch
    ):
        sent = []

        async def fake_send(to, subject, body, **kwargs):
            sent.append(to)
            return True

        monkeypatch.setattr("app.routers.tracking.send_email", fake_send)
        shipment = await make_shipment(acme)
        await client.post(
            "/api/tracking/",
            json={
                "shipment_id": shipment.id,
                "status": "at_sea",
                "description": "On the water",
                "notify_client": True,
            },
            headers=ops_headers,
        )
        assert sent == [acme.contact_email]

    async def test_edit_and_delete(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment, db_session
    ):
        shipment = await make_shipment(acme, status="in_transit")
        update = await add_update(db_session, shipment)

        response = await client.put(
            f"/api/tracking/{update.id}",
            json={"status": "customs_clearance", "customs_status": "Inspection"},
            headers=ops_headers,
        )
        assert response.status_code == 200
        assert response.json()["customs_status"] == "Inspection"
        assert shipment.status == "customs"

        response = await client.delete(f"/api/tracking/{update.id}", headers=ops_headers)
        assert response.status_code == 204
        response = await client.put(
            f"/api/tracking/{update.id}", json={"description": "gone"}, headers=ops_headers,
        )
        assert response.status_code == 404

    async def test_portal_user_cannot_write(
        self, client: AsyncClient, portal_headers: dict, acme, make_shipment
    ):
        shipment = await make_shipment(acme)
        response = await client.post(
            "/api/tracking/",
            json={"shipment_id": shipment.id, "status": "in_transit", "description": "x"},
            headers=portal_headers,
        )
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestTrackingReads:

    async def test_public_tracking(self, client: AsyncClient, acme, make_shipment, db_session):
        shipment = await make_shipment(acme, status="in_transit")
        await add_update(db_session, shipment, "picked_up", minutes_ago=60)
        await add_update(db_session, shipment, "at_sea", minutes_ago=5)
        await add_update(db_session, shipment, "delayed", is_public=False)

        response = await client.get(f"/api/tracking/public/{shipment.tracking_number.lower()}")

        assert response.status_code == 200
        data = response.json()
        assert data["shipment"]["tracking_number"] == shipment.tracking_number
        assert [u["status"] for u in data["updates"]] == ["at_sea", "picked_up"]

    async def test_public_tracking_unknown(self, client: AsyncClient, roles):
        response = await client.get("/api/tracking/public/CCT2000999")
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Tracking number not found"

    async def test_shipment_history_for_staff_includes_internal(
        self, client: AsyncClient, ops_headers: dict, acme, make_shipment, db_session
    ):
        shipment = await make_shipment(acme)
        await add_update(db_session, shipment, "picked_up")
        await add_update(db_session, shipment, "delayed", is_public=False)

        response = await client.get(f"/api/tracking/shipment/{shipment.id}", headers=ops_headers)
        assert len(response.json()) == 2

    async def test_shipment_history_for_portal_is_public_only(
        self, client: AsyncClient, portal_headers: dict, acme, make_shipment, db_session
    ):
        shipment = await make_shipment(acme)
        await add_update(db_session, shipment, "picked_up")
        await add_update(db_session, shipment, "delayed", is_public=False)

        response = await client.get(f"/api/tracking/shipment/{shipment.id}", headers=portal_headers)
        assert [u["status"] for u in response.json()] == ["picked_up"]

    async def test_portal_cannot_read_other_client_history(
        self, client: AsyncClient, portal_headers: dict, globex, make_shipment
    ):
        shipment = await make_shipment(globex)
        response = await client.get(f"/api/tracking/shipment/{shipment.id}", headers=portal_headers)
        assert response.status_code == 403

    async def test_active_shipments(self, client: AsyncClient, ops_headers: dict, acme, make_shipment, db_session):
        moving = await make_shipment(acme, status="in_transit")
        await make_shipment(acme, status="delivered")
        await add_update(db_session, moving, "at_sea")

        response = await client.get("/api/tracking/active-shipments", headers=ops_headers)
        data = response.json()
        assert len(data) == 1
        assert data[0]["last_update"]["status"] == "at_sea"

    async def test_feed(self, client: AsyncClient, ops_headers: dict, acme, make_shipment, db_session):
        shipment = await make_shipment(acme)
        await add_update(db_session, shipment, "picked_up", minutes_ago=10)
        await add_update(db_session, shipment, "at_sea")

        response = await client.get("/api/tracking/all?limit=1", headers=ops_headers)
        data = response.json()
        assert len(data) == 1
        assert data[0]["status"] == "at_sea"
        assert data[0]["shipment_code"] == shipment.shipment_code

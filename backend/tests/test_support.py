"""Tests for the support desk: ownership, internal notes and ticket lifecycle."""

from datetime import date

import pytest
from httpx import AsyncClient


@pytest.fixture
def open_ticket(client: AsyncClient):
    async def _open(headers: dict, subject: str = "Where is my cargo?", **fields) -> dict:
        response = await client.post(
            "/api/support/",
            json={"subject": subject, "description": "No update for a week", **fields},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _open


@pytest.mark.integration
@pytest.mark.asyncio
class TestSupportTickets:

    async def test_portal_user_opens_ticket(self, open_ticket, portal_headers: dict, acme):
        ticket = await open_ticket(portal_headers, category="shipment", priority="high")

        assert ticket["ticket_number"] == f"TKT-{date.today().year}-00001"
        assert ticket["client_id"] == acme.id
        assert ticket["status"] == "open"
        assert ticket["priority"] == "high"

    async def test_invalid_priority(self, client: AsyncClient, portal_headers: dict):
        response = await client.post(
            "/api/support/",
            json={"subject": "x", "description": "y", "priority": "whenever"},
            headers=portal_headers,
        )
        assert response.status_code == 422

    async def test_portal_user_sees_only_own_tickets(
        self, client: AsyncClient, open_ticket, portal_headers: dict, ops_headers: dict
    ):
        mine = await open_ticket(portal_headers)
        staff_ticket = await open_ticket(ops_headers, subject="Internal tooling")

        response = await client.get("/api/support/", headers=portal_headers)
        assert [t["id"] for t in response.json()["items"]] == [mine["id"]]

        response = await client.get(f"/api/support/{staff_ticket['id']}", headers=portal_headers)
        assert response.status_code == 403

        response = await client.get("/api/support/", headers=ops_headers)
        assert response.json()["total"] == 2

    async def test_internal_notes_hidden_from_client(
        self, client: AsyncClient, open_ticket, portal_headers: dict, ops_headers: dict
    ):
        ticket = await open_ticket(portal_headers)
        await client.post(
            f"/api/support/{ticket['id']}/messages",
            json={"message": "Customer is a VIP", "is_internal": True},
            headers=ops_headers,
        )
        await client.post(
            f"/api/support/{ticket['id']}/messages",
            json={"message": "We are checking with the carrier"},
            headers=ops_headers,
        )

        staff_view = await client.get(f"/api/support/{ticket['id']}", headers=ops_headers)
        assert len(staff_view.json()["messages"]) == 2

        client_view = await client.get(f"/api/support/{ticket['id']}", headers=portal_headers)
        messages = client_view.json()["messages"]
        assert [m["message"] for m in messages] == ["We are checking with the carrier"]

    async def test_client_cannot_post_internal(
        self, client: AsyncClient, open_ticket, portal_headers: dict
    ):
        ticket = await open_ticket(portal_headers)
        response = await client.post(
            f"/api/support/{ticket['id']}/messages",
            json={"message": "secret", "is_internal": True},
            headers=portal_headers,
        )
        assert response.status_code == 403

    async def test_client_reply_reopens_waiting_ticket(
        self, client: AsyncClient, open_ticket, portal_headers: dict, ops_headers: dict
    ):
        ticket = await open_ticket(portal_headers)
        await client.put(
            f"/api/support/{ticket['id']}", json={"status": "waiting_customer"}, headers=ops_headers,
        )

        response = await client.post(
            f"/api/support/{ticket['id']}/messages",
            json={"message": "Here is the booking reference"},
            headers=portal_headers,
        )
        assert response.json()["status"] == "open"

    async def test_resolve_stamps_resolver(
        self, client: AsyncClient, open_ticket, portal_headers: dict, ops_headers: dict
    ):
        ticket = await open_ticket(portal_headers)
        response = await client.put(
            f"/api/support/{ticket['id']}",
            json={"status": "resolved", "resolution": "Cargo released from customs"},
            headers=ops_headers,
        )
        data = response.json()
        assert data["status"] == "resolved"
        assert data["resolved_at"] is not None

    async def test_close_and_closed_guards(
        self, client: AsyncClient, open_ticket, portal_headers: dict
    ):
        ticket = await open_ticket(portal_headers)

        response = await client.put(f"/api/support/{ticket['id']}/close", headers=portal_headers)
        assert response.json()["status"] == "closed"

        response = await client.put(f"/api/support/{ticket['id']}/close", headers=portal_headers)
        assert response.status_code == 400

        response = await client.post(
            f"/api/support/{ticket['id']}/messages", json={"message": "hello?"}, headers=portal_headers,
        )
        assert response.status_code == 400

    async def test_stats(self, client: AsyncClient, open_ticket, portal_headers: dict, ops_headers: dict):
        first = await open_ticket(portal_headers)
        await open_ticket(portal_headers)
        await client.put(f"/api/support/{first['id']}/close", headers=portal_headers)

        response = await client.get("/api/support/stats", headers=ops_headers)
        assert response.json() == {"total": 2, "open": 1, "in_progress": 0, "resolved": 1}

"""Tests for invoices: totals, lifecycle guards, scoping and the shipment preview."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient


def invoice_payload(client_id: str, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "due_date": (date.today() + timedelta(days=30)).isoformat(),
        "items": [
            {"description": "Ocean freight", "quantity": 2, "unit_price": 1500},
            {"description": "Documentation", "unit_price": 75.5},
        ],
        "tax": 100,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_invoice(client: AsyncClient, auth_headers: dict):
    async def _create(client_id: str, **overrides) -> dict:
        response = await client.post(
            "/api/invoices/", json=invoice_payload(client_id, **overrides), headers=auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.mark.integration
@pytest.mark.asyncio
class TestInvoices:

    async def test_create_computes_totals(self, create_invoice, acme):
        data = await create_invoice(acme.id)

        assert data["invoice_code"] == "INV-001"
        assert data["invoice_number"] == f"CCT-INV-{date.today().year}-0001"
        assert data["items"][0]["amount"] == 3000
        assert data["subtotal"] == 3075.5
        assert data["total"] == 3175.5
        assert data["status"] == "draft"
        assert data["client_name"] == "Acme Imports"

    async def test_items_required(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.post(
            "/api/invoices/", json=invoice_payload(acme.id, items=[]), headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_cannot_create_as_paid(self, client: AsyncClient, auth_headers: dict, acme):
        response = await client.post(
            "/api/invoices/", json=invoice_payload(acme.id, status="paid"), headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_shipment_must_belong_to_client(
        self, client: AsyncClient, auth_headers: dict, acme, globex, make_shipment
    ):
        shipment = await make_shipment(globex)
        response = await client.post(
            "/api/invoices/",
            json=invoice_payload(acme.id, shipment_id=shipment.id),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Shipment does not belong to this client"

    async def test_update_recomputes(self, client: AsyncClient, auth_headers: dict, create_invoice, acme):
        invoice = await create_invoice(acme.id)
        response = await client.put(
            f"/api/invoices/{invoice['id']}",
            json={"items": [{"description": "Flat fee", "unit_price": 500}], "tax": 0},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["subtotal"] == 500
        assert response.json()["total"] == 500

    async def test_pay_then_guards(self, client: AsyncClient, auth_headers: dict, create_invoice, acme):
        invoice = await create_invoice(acme.id, status="sent")

        response = await client.put(
            f"/api/invoices/{invoice['id']}/pay",
            json={"payment_method": "Bank Transfer"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["paid_date"] == date.today().isoformat()

        response = await client.put(f"/api/invoices/{invoice['id']}/pay", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invoice is already paid"

        response = await client.put(
            f"/api/invoices/{invoice['id']}", json={"notes": "edit"}, headers=auth_headers,
        )
        assert response.status_code == 400

        response = await client.put(f"/api/invoices/{invoice['id']}/cancel", headers=auth_headers)
        assert response.status_code == 400

    async def test_cancelled_cannot_be_paid(self, client: AsyncClient, auth_headers: dict, create_invoice, acme):
        invoice = await create_invoice(acme.id)
        await client.put(f"/api/invoices/{invoice['id']}/cancel", headers=auth_headers)

        response = await client.put(f"/api/invoices/{invoice['id']}/pay", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot pay a cancelled invoice"

    async def test_stats(self, client: AsyncClient, auth_headers: dict, create_invoice, acme):
        paid = await create_invoice(acme.id, status="sent")
        await client.put(f"/api/invoices/{paid['id']}/pay", json={}, headers=auth_headers)
        await create_invoice(acme.id)
        cancelled = await create_invoice(acme.id)
        await client.put(f"/api/invoices/{cancelled['id']}/cancel", headers=auth_headers)

        response = await client.get("/api/invoices/stats", headers=auth_headers)
        data = response.json()
        assert data["count"]["total"] == 3
        assert data["count"]["paid"] == 1
        assert data["count"]["pending"] == 1
        assert data["amount"]["total"] == 6351.0
        assert data["amount"]["paid"] == 3175.5


@pytest.mark.auth
@pytest.mark.asyncio
class TestInvoiceScope:

    async def test_portal_user_sees_own_invoices(
        self, client: AsyncClient, portal_headers: dict, create_invoice, acme, globex
    ):
        mine = await create_invoice(acme.id)
        theirs = await create_invoice(globex.id)

        response = await client.get("/api/invoices/", headers=portal_headers)
        assert [i["id"] for i in response.json()["items"]] == [mine["id"]]

        response = await client.get(f"/api/invoices/{theirs['id']}", headers=portal_headers)
        assert response.status_code == 403

    async def test_portal_user_cannot_pay(
        self, client: AsyncClient, portal_headers: dict, create_invoice, acme
    ):
        invoice = await create_invoice(acme.id)
        response = await client.put(f"/api/invoices/{invoice['id']}/pay", json={}, headers=portal_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestShipmentPreview:

    async def test_preview(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        shipment = await make_shipment(acme, total_cost=1000, cargo_weight=500)

        response = await client.get(
            f"/api/invoices/shipment/{shipment.id}/preview", headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["invoice_number"] == f"CCT-INV-{date.today().year}-0001"
        assert data["date"] == date.today().strftime("%d/%m/%Y")
        assert data["billed_to"]["company"] == "Acme Imports"
        line = data["line_items"][0]
        assert line["freight"] == 850
        assert line["gross_weight"] == 550
        assert data["summary"] == {"subtotal": 1000, "tax": 90, "total": 1090}

    async def test_preview_reuses_existing_number(
        self, client: AsyncClient, auth_headers: dict, create_invoice, acme, make_shipment
    ):
        shipment = await make_shipment(acme, total_cost=1000)
        invoice = await create_invoice(acme.id, shipment_id=shipment.id)

        response = await client.get(
            f"/api/invoices/shipment/{shipment.id}/preview", headers=auth_headers,
        )
        assert response.json()["invoice_number"] == invoice["invoice_number"]

    async def test_preview_other_client_forbidden(
        self, client: AsyncClient, portal_headers: dict, globex, make_shipment
    ):
        shipment = await make_shipment(globex)
        response = await client.get(
            f"/api/invoices/shipment/{shipment.id}/preview", headers=portal_headers,
        )
        assert response.status_code == 403

    async def test_pdf(self, client: AsyncClient, auth_headers: dict, acme, make_shipment):
        shipment = await make_shipment(acme, total_cost=1000)
        response = await client.get(f"/api/invoices/shipment/{shipment.id}/pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    async def test_pdf_wraps_long_text(
        self, client: AsyncClient, auth_headers: dict, make_client, make_shipment, pdf_text
    ):
        consignee = await make_client(
            "Northern Hemisphere Agricultural Machinery Distribution Cooperative",
            address_street="Unit 14, Maasvlakte Distribution Park, Europaweg Terminal Gate 7",
        )
        shipment = await make_shipment(
            consignee,
            total_cost=1000,
            cargo_description="Disassembled combine harvesters with spare cutter bars and hydraulics",
            notes="Deliver to bonded warehouse only after customs clearance has been confirmed in writing "
                  "by the receiving agent at the destination terminal",
        )
        response = await client.get(f"/api/invoices/shipment/{shipment.id}/pdf", headers=auth_headers)
        text = pdf_text(response.content)

        for word in ("Cooperative", "Europaweg", "Gate", "hydraulics", "receiving", "terminal"):
            assert word in text

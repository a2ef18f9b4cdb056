"""Tests for the expense and income ledgers and their lookup lists."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient


@pytest.fixture
def record_expense(client: AsyncClient, staff_headers: dict):
    async def _record(**fields) -> dict:
        payload = {"category": "fuel", "description": "Diesel top-up", "amount": 250.0, **fields}
        response = await client.post("/api/expenses/", json=payload, headers=staff_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _record


@pytest.fixture
def record_income(client: AsyncClient, staff_headers: dict):
    async def _record(**fields) -> dict:
        payload = {
            "source": "freight_charges",
            "description": "Freight SHP-001",
            "amount": 1000.0,
            **fields,
        }
        response = await client.post("/api/income/", json=payload, headers=staff_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _record


@pytest.mark.integration
@pytest.mark.asyncio
class TestExpenses:

    async def test_create_defaults_date(self, record_expense):
        data = await record_expense()
        assert data["date"] == date.today().isoformat()
        assert data["status"] == "pending"
        assert data["payment_method"] == "Bank Transfer"

    async def test_unknown_category(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            "/api/expenses/",
            json={"category": "bribes", "description": "x", "amount": 1},
            headers=staff_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid category: bribes"

    @pytest.mark.parametrize(
        "field,value",
        [("amount", -5), ("status", "lost"), ("payment_method", "Barter")],
    )
    async def test_validation(self, client: AsyncClient, staff_headers: dict, field, value):
        payload = {"category": "fuel", "description": "x", "amount": 1, field: value}
        response = await client.post("/api/expenses/", json=payload, headers=staff_headers)
        assert response.status_code == 422

    async def test_list_filters(self, client: AsyncClient, staff_headers: dict, record_expense):
        await record_expense(category="fuel")
        await record_expense(category="port_fees", description="Rotterdam dues")

        response = await client.get("/api/expenses/?category=port_fees", headers=staff_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["description"] == "Rotterdam dues"

        response = await client.get("/api/expenses/?search=diesel", headers=staff_headers)
        assert response.json()["total"] == 1

    async def test_update_and_delete(self, client: AsyncClient, staff_headers: dict, record_expense):
        expense = await record_expense()
        response = await client.put(
            f"/api/expenses/{expense['id']}", json={"status": "paid"}, headers=staff_headers,
        )
        assert response.json()["status"] == "paid"

        response = await client.delete(f"/api/expenses/{expense['id']}", headers=staff_headers)
        assert response.status_code == 204
        response = await client.get(f"/api/expenses/{expense['id']}", headers=staff_headers)
        assert response.status_code == 404

    async def test_stats(self, client: AsyncClient, staff_headers: dict, record_expense):
        await record_expense(amount=100)
        await record_expense(amount=50.5, status="paid")
        await record_expense(category="insurance", amount=400)

        response = await client.get("/api/expenses/stats", headers=staff_headers)
        data = response.json()
        assert data["total_amount"] == 550.5
        assert data["count"] == 3
        assert data["by_category"][0] == {"category": "insurance", "total": 400.0, "count": 1}
        assert data["by_status"] == {"pending": 2, "paid": 1}
        assert data["by_month"] == [{"month": date.today().strftime("%Y-%m"), "total": 550.5}]

    async def test_operations_manager_has_no_access(self, client: AsyncClient, ops_headers: dict):
        response = await client.get("/api/expenses/", headers=ops_headers)
        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestExpenseCategories:

    async def test_seeded_categories(self, client: AsyncClient, staff_headers: dict):
        response = await client.get("/api/expenses/categories", headers=staff_headers)
        values = {c["value"] for c in response.json()}
        assert {"fuel", "port_fees", "customs_duties", "other"} <= values

    async def test_custom_category_lifecycle(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            "/api/expenses/categories", json={"label": "Demurrage & Detention"}, headers=staff_headers,
        )
        assert response.status_code == 201
        category = response.json()
        assert category["value"] == "demurrage_detention"
        assert category["is_system"] is False

        duplicate = await client.post(
            "/api/expenses/categories", json={"label": "demurrage detention"}, headers=staff_headers,
        )
        assert duplicate.status_code == 400

        response = await client.delete(f"/api/expenses/categories/{category['id']}", headers=staff_headers)
        assert response.status_code == 204

    async def test_system_category_protected(self, client: AsyncClient, staff_headers: dict):
        categories = (await client.get("/api/expenses/categories", headers=staff_headers)).json()
        fuel = next(c for c in categories if c["value"] == "fuel")

        response = await client.delete(f"/api/expenses/categories/{fuel['id']}", headers=staff_headers)
        assert response.status_code == 403
        assert response.json()["error"] == {
            "code": "PERMISSION_DENIED",
            "message": "Cannot delete a system category",
        }

    async def test_category_in_use_protected(
        self, client: AsyncClient, staff_headers: dict, record_expense
    ):
        created = await client.post(
            "/api/expenses/categories", json={"label": "Tolls"}, headers=staff_headers,
        )
        await record_expense(category="tolls")

        response = await client.delete(
            f"/api/expenses/categories/{created.json()['id']}", headers=staff_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete category: used by 1 record(s)"


@pytest.mark.integration
@pytest.mark.asyncio
class TestIncome:

    async def test_create(self, record_income):
        data = await record_income()
        assert data["status"] == "pending"
        assert data["balance_due"] == 1000
        assert data["is_overdue"] is False

    async def test_create_with_partial_receipt(self, record_income):
        data = await record_income(amount_received=400)
        assert data["status"] == "partially_paid"
        assert data["balance_due"] == 600

    async def test_unknown_client(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            "/api/income/",
            json={"source": "other", "description": "x", "amount": 1, "client_id": "missing"},
            headers=staff_headers,
        )
        assert response.status_code == 404

    async def test_payments_settle_status(self, client: AsyncClient, staff_headers: dict, record_income):
        income = await record_income()

        response = await client.post(
            f"/api/income/{income['id']}/payment", json={"amount": 300}, headers=staff_headers,
        )
        assert response.json()["status"] == "partially_paid"
        assert response.json()["amount_received"] == 300

        response = await client.post(
            f"/api/income/{income['id']}/payment", json={"amount": 700}, headers=staff_headers,
        )
        assert response.json()["status"] == "received"
        assert response.json()["balance_due"] == 0

    async def test_payment_must_be_positive(self, client: AsyncClient, staff_headers: dict, record_income):
        income = await record_income()
        response = await client.post(
            f"/api/income/{income['id']}/payment", json={"amount": 0}, headers=staff_headers,
        )
        assert response.status_code == 400

    async def test_overdue_flag(self, record_income):
        data = await record_income(due_date=(date.today() - timedelta(days=3)).isoformat())
        assert data["is_overdue"] is True

    async def test_update_amount_resettles(self, client: AsyncClient, staff_headers: dict, record_income):
        income = await record_income(amount_received=500)
        response = await client.put(
            f"/api/income/{income['id']}", json={"amount": 500}, headers=staff_headers,
        )
        assert response.json()["status"] == "received"

    async def test_stats(self, client: AsyncClient, staff_headers: dict, record_income):
        await record_income(amount=1000, amount_received=1000)
        await record_income(source="storage_fees", amount=200)

        response = await client.get("/api/income/stats", headers=staff_headers)
        data = response.json()
        assert data["total_amount"] == 1200
        assert data["total_received"] == 1000
        assert data["outstanding"] == 200
        assert data["by_status"] == {"received": 1, "pending": 1}

    async def test_custom_source(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            "/api/income/sources", json={"label": "Consulting"}, headers=staff_headers,
        )
        assert response.status_code == 201

        sources = (await client.get("/api/income/sources", headers=staff_headers)).json()
        assert "consulting" in {s["value"] for s in sources}

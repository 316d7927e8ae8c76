"""
API tests - routers wired to an in-memory database.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from salon_ledger.infrastructure.database import get_db
from salon_ledger.infrastructure.database.models import utcnow
from salon_ledger.main import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def chart(client, salon):
    response = client.post("/api/v1/accounting/accounts/seed", params={"salon_id": str(salon.id)})
    assert response.status_code == 200
    return {a["code"]: a for a in response.json()}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestAccountingApi:

    def test_seed_is_idempotent(self, client, salon, chart):
        again = client.post("/api/v1/accounting/accounts/seed", params={"salon_id": str(salon.id)})
        assert {a["id"] for a in again.json()} == {a["id"] for a in chart.values()}
        assert "1010" in chart and "6020" in chart

    def test_duplicate_account_code_conflicts(self, client, salon, chart):
        response = client.post("/api/v1/accounting/accounts", json={
            "salon_id": str(salon.id), "code": "1010", "name": "Petty cash", "account_type": "asset",
        })
        assert response.status_code == 409

    def test_unbalanced_entry_rejected(self, client, salon, chart):
        response = client.post("/api/v1/accounting/journal-entries", json={
            "salon_id": str(salon.id),
            "description": "Owner capital",
            "lines": [
                {"account_id": chart["1010"]["id"], "debit_amount": "100000"},
                {"account_id": chart["3000"]["id"], "credit_amount": "90000"},
            ],
        })
        assert response.status_code == 400
        assert "Unbalanced" in response.json()["detail"]

    def test_balanced_entry_created_and_listed(self, client, salon, chart):
        response = client.post("/api/v1/accounting/journal-entries", json={
            "salon_id": str(salon.id),
            "description": "Owner capital",
            "lines": [
                {"account_id": chart["1010"]["id"], "debit_amount": "100000"},
                {"account_id": chart["3000"]["id"], "credit_amount": "100000"},
            ],
        })
        assert response.status_code == 201
        entry = response.json()
        assert entry["entry_number"]
        assert [line["line_number"] for line in entry["lines"]] == [1, 2]

        page = client.get("/api/v1/accounting/journal-entries", params={"salon_id": str(salon.id)})
        assert page.json()["total"] == 1
        fetched = client.get(f"/api/v1/accounting/journal-entries/{entry['id']}")
        assert fetched.json()["id"] == entry["id"]

    def test_missing_entry_is_404(self, client):
        response = client.get(f"/api/v1/accounting/journal-entries/{uuid4()}")
        assert response.status_code == 404


class TestCommissionFlowApi:

    def test_sale_event_then_payment(self, client, salon, owner_id, employee, fund_wallet):
        sale_id = uuid4()
        response = client.post("/api/v1/accounting/events/sale-completed", json={
            "salon_id": str(salon.id),
            "sale_id": str(sale_id),
            "total_amount": "10000",
            "items": [
                {"sale_item_id": str(uuid4()), "employee_id": str(employee.id), "line_total": "10000"},
            ],
        })
        assert response.status_code == 200
        commission = response.json()[0]
        assert Decimal(commission["amount"]) == Decimal("1000")

        refused = client.post(f"/api/v1/commissions/{commission['id']}/pay")
        assert refused.status_code == 400
        assert Decimal(refused.json()["required"]) == Decimal("1000")

        fund_wallet(owner_id, Decimal("5000"), salon.id)
        paid = client.post(f"/api/v1/commissions/{commission['id']}/pay", json={"payment_method": "cash"})
        assert paid.status_code == 200
        assert paid.json()["paid"] is True

        entries = client.get(
            f"/api/v1/accounting/journal-entries/by-reference/commission/{commission['id']}"
        )
        assert len(entries.json()) == 1

    def test_unknown_commission_is_404(self, client):
        response = client.post(f"/api/v1/commissions/{uuid4()}/pay")
        assert response.status_code == 404


class TestReportsApi:

    def test_financial_summary_rejects_unknown_type(self, client, salon):
        response = client.get("/api/v1/reports/financial-summary", params={
            "salon_id": str(salon.id), "type": "refunds",
        })
        assert response.status_code == 400

    def test_balance_sheet_balances(self, client, salon, chart):
        client.post("/api/v1/accounting/journal-entries", json={
            "salon_id": str(salon.id),
            "description": "Owner capital",
            "lines": [
                {"account_id": chart["1010"]["id"], "debit_amount": "100000"},
                {"account_id": chart["3000"]["id"], "credit_amount": "100000"},
            ],
        })
        response = client.get("/api/v1/reports/balance-sheet", params={
            "salon_id": str(salon.id), "as_of_date": utcnow().date().isoformat(),
        })
        assert response.status_code == 200
        sheet = response.json()
        assert Decimal(sheet["total_assets"]) == Decimal("100000")
        assert Decimal(sheet["total_assets"]) == (
            Decimal(sheet["total_liabilities"]) + Decimal(sheet["total_equity"])
        )
        assert Decimal(sheet["discrepancy"]) == Decimal("0")

from __future__ import annotations

import csv
import io

import pytest


def _post(client, **overrides):
    body = {
        "type": "expense",
        "description": "Groceries",
        "amount": 300,
        "category": "food",
        "note": "weekly shop",
        "date": "2024-01-20",
    }
    body.update(overrides)
    return client.post("/api/transactions", json=body)


@pytest.fixture
def seeded(client):
    income = _post(client, type="income", description="January salary", amount=1000,
                   category="salary", note=None, date="2024-01-15").get_json()
    expense = _post(client).get_json()
    return income, expense


def test_health(client) -> None:
    body = client.get("/api/health").get_json()
    assert body["status"] == "healthy"
    assert body["database"] == "sqlite"


def test_create_and_fetch_transaction(client) -> None:
    resp = _post(client)
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["amount"] == "300.00"
    assert created["type"] == "expense"
    assert created["date"].startswith("2024-01-20")
    fetched = client.get(f"/api/transactions/{created['id']}").get_json()
    assert fetched == created


def test_create_rejects_invalid_payload(client) -> None:
    resp = _post(client, amount=-5, description="")
    assert resp.status_code == 400
    body = resp.get_json()
    assert {e["field"] for e in body["errors"]} == {"amount", "description"}
    assert client.get("/api/transactions").get_json() == []


def test_create_requires_json_object(client) -> None:
    resp = client.post("/api/transactions", data="nope", content_type="text/plain")
    assert resp.status_code == 400


def test_listing_is_newest_first(client, seeded) -> None:
    income, expense = seeded
    ids = [t["id"] for t in client.get("/api/transactions").get_json()]
    assert ids == [expense["id"], income["id"]]


def test_listing_filters(client, seeded) -> None:
    income, expense = seeded
    resp = client.get("/api/transactions?type=expense&minAmount=200")
    assert [t["id"] for t in resp.get_json()] == [expense["id"]]

    resp = client.get("/api/transactions?dateRange=custom&startDate=2024-01-01&endDate=2024-01-16")
    assert [t["id"] for t in resp.get_json()] == [income["id"]]

    resp = client.get("/api/transactions?search=WEEKLY")
    assert [t["id"] for t in resp.get_json()] == [expense["id"]]

    resp = client.get("/api/transactions?dateRange=month")
    assert len(resp.get_json()) == 2


def test_listing_rejects_malformed_filters(client, seeded) -> None:
    resp = client.get("/api/transactions?minAmount=lots")
    assert resp.status_code == 400
    assert resp.get_json()["errors"][0]["field"] == "minAmount"


def test_update_transaction(client, seeded) -> None:
    _, expense = seeded
    resp = client.put(f"/api/transactions/{expense['id']}", json={"amount": "320.5"})
    assert resp.status_code == 200
    assert resp.get_json()["amount"] == "320.50"
    assert resp.get_json()["description"] == "Groceries"

    assert client.put("/api/transactions/missing", json={"amount": 1}).status_code == 404
    assert client.put(f"/api/transactions/{expense['id']}", json={"type": "gift"}).status_code == 400


def test_delete_transaction(client, seeded) -> None:
    _, expense = seeded
    assert client.delete(f"/api/transactions/{expense['id']}").status_code == 204
    assert client.get(f"/api/transactions/{expense['id']}").status_code == 404
    assert client.delete(f"/api/transactions/{expense['id']}").status_code == 404


def test_summary(client, seeded) -> None:
    assert client.get("/api/summary").get_json() == {
        "balance": 700.0,
        "monthlyIncome": 1000.0,
        "monthlyExpenses": 300.0,
        "incomeTransactionCount": 1,
        "expenseTransactionCount": 1,
        "totalTransactions": 2,
    }


def test_summary_when_empty(client) -> None:
    body = client.get("/api/summary").get_json()
    assert body["balance"] == 0
    assert body["totalTransactions"] == 0


def test_monthly_and_category_summaries(client, seeded) -> None:
    _post(client, description="Bus", amount=40, category="transport", date="2024-02-03", note=None)
    months = client.get("/api/summary/monthly").get_json()
    assert months == {
        "2024-01": {"income": 1000.0, "expense": 300.0, "net": 700.0},
        "2024-02": {"income": 0.0, "expense": 40.0, "net": -40.0},
    }
    cats = client.get("/api/summary/categories?dateRange=month").get_json()
    assert cats == [{"category": "food", "label": "Food", "total": 300.0}]
    assert client.get("/api/summary/categories?kind=loan").status_code == 400


def test_balance_series(client, seeded) -> None:
    series = client.get("/api/summary/balance").get_json()
    assert [point["balance"] for point in series] == [1000.0, 700.0]
    assert series[1]["amount"] == -300.0


def test_export_csv(client, seeded) -> None:
    resp = client.get("/api/transactions/export?type=expense")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "transactions_2024-01-25.csv" in resp.headers["Content-Disposition"]
    rows = list(csv.reader(io.StringIO(resp.get_data(as_text=True))))
    assert rows == [
        ["Date", "Description", "Category", "Type", "Amount", "Note"],
        ["2024-01-20", "Groceries", "food", "Expense", "300.00", "weekly shop"],
    ]


def test_list_categories_by_type(client) -> None:
    everything = client.get("/api/categories").get_json()
    income = client.get("/api/categories?type=income").get_json()
    assert len(everything) == 14
    assert {c["type"] for c in income} == {"income"}
    assert len(income) == 5
    assert all(c["isDefault"] for c in everything)


def test_category_lifecycle(client) -> None:
    body = {"key": "pets", "label": "Pets", "icon": "🐶", "color": "#a16207", "type": "expense"}
    resp = client.post("/api/categories", json=body)
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["isDefault"] is False

    duplicate = client.post("/api/categories", json=body)
    assert duplicate.status_code == 400
    assert "already exists" in duplicate.get_json()["message"]

    renamed = client.put(f"/api/categories/{created['id']}", json={"label": "Animals"})
    assert renamed.get_json()["label"] == "Animals"
    assert client.put(f"/api/categories/{created['id']}", json={"key": "animals"}).status_code == 400
    assert client.get(f"/api/categories/{created['id']}").get_json()["key"] == "pets"

    assert client.delete(f"/api/categories/{created['id']}").status_code == 204
    assert client.get(f"/api/categories/{created['id']}").status_code == 404
    assert client.delete(f"/api/categories/{created['id']}").status_code == 404


def test_default_category_delete_refused(client) -> None:
    food = next(c for c in client.get("/api/categories").get_json() if c["key"] == "food")
    resp = client.delete(f"/api/categories/{food['id']}")
    assert resp.status_code == 400
    assert client.get(f"/api/categories/{food['id']}").status_code == 200


def test_unknown_route_is_json_404(client) -> None:
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "message" in resp.get_json()


def test_huge_amount_is_a_validation_error(client, seeded) -> None:
    resp = _post(client, amount="1e30")
    assert resp.status_code == 400
    assert resp.get_json()["errors"][0]["field"] == "amount"
    _, expense = seeded
    resp = client.put(f"/api/transactions/{expense['id']}", json={"amount": 1e30})
    assert resp.status_code == 400


def test_default_category_cannot_be_unprotected(client) -> None:
    food = next(c for c in client.get("/api/categories").get_json() if c["key"] == "food")
    resp = client.put(f"/api/categories/{food['id']}", json={"isDefault": False})
    assert resp.status_code == 400
    assert client.get(f"/api/categories/{food['id']}").get_json()["isDefault"] is True
    assert client.delete(f"/api/categories/{food['id']}").status_code == 400

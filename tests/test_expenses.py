from datetime import datetime
from pathlib import Path

import pytest

from config import settings
from storage import storage


@pytest.fixture
def expense_form(project):
    return {
        "title": "Cement bags",
        "amount": "450.50",
        "category": "material",
        "date": "2024-01-15",
        "paymentMethod": "cash",
        "projectId": project["_id"],
        "description": "50 bags",
    }


def create(client, form, receipt=None):
    files = {"receipt": receipt} if receipt else None
    return client.post("/api/expenses", data=form, files=files)


def test_create_with_receipt(client, expense_form):
    resp = create(client, expense_form, ("invoice.PDF", b"%PDF-1.4 test", "application/pdf"))
    assert resp.status_code == 201
    expense = resp.json()["data"]
    filename = expense["receipt"]
    assert filename.startswith("receipt-") and filename.endswith(".pdf")
    assert storage.exists(filename)
    assert (Path(settings.upload_dir) / filename).is_file()
    assert expense["amount"] == 450.5

    fetched = client.get(f"/api/expenses/{expense['_id']}").json()["data"]
    assert filename in fetched["receiptUrl"]
    served = client.get(f"/uploads/{filename}")
    assert served.status_code == 200
    assert served.content == b"%PDF-1.4 test"


def test_create_without_receipt(client, expense_form):
    expense = create(client, expense_form).json()["data"]
    assert expense["receipt"] is None
    assert "receiptUrl" not in expense


def test_create_accepts_json(client, expense_form):
    resp = client.post("/api/expenses", json={**expense_form, "amount": 12.5, "receipt": "../../etc/passwd"})
    assert resp.status_code == 201
    assert resp.json()["data"]["receipt"] is None


@pytest.mark.parametrize("field,value", [("amount", "0"), ("amount", "-4"), ("category", "food"), ("paymentMethod", "bitcoin")])
def test_invalid_values_rejected(client, expense_form, db, field, value):
    resp = create(client, {**expense_form, field: value})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert db["expense"].count_documents({}) == 0


def test_unknown_project_rejected(client, expense_form, db):
    resp = create(client, {**expense_form, "projectId": "65a000000000000000000000"})
    assert resp.status_code == 400
    assert "Project" in resp.json()["message"]
    assert db["expense"].count_documents({}) == 0


def test_date_range_is_inclusive(client, expense_form):
    for day in ("2023-12-31", "2024-01-01", "2024-01-15", "2024-01-31", "2024-02-01"):
        create(client, {**expense_form, "date": day})
    resp = client.get("/api/expenses", params={"startDate": "2024-01-01", "endDate": "2024-01-31"})
    data = resp.json()["data"]
    assert data["totalCount"] == 3
    dates = [datetime.fromisoformat(e["date"]) for e in data["items"]]
    assert all(datetime(2024, 1, 1) <= d <= datetime(2024, 1, 31) for d in dates)
    assert dates == sorted(dates, reverse=True)


def test_pagination(client, expense_form):
    for i in range(7):
        create(client, {**expense_form, "title": f"Item {i}"})
    data = client.get("/api/expenses", params={"page": 2, "limit": 3}).json()["data"]
    assert data["totalCount"] == 7
    assert data["totalPages"] == 3
    assert data["currentPage"] == 2
    assert len(data["items"]) == 3
    last = client.get("/api/expenses", params={"page": 3, "limit": 3}).json()["data"]
    assert len(last["items"]) == 1


def test_filter_by_category_and_project(client, expense_form, project):
    create(client, expense_form)
    create(client, {**expense_form, "category": "labor"})
    data = client.get("/api/expenses", params={"category": "labor", "projectId": project["_id"]}).json()["data"]
    assert [e["category"] for e in data["items"]] == ["labor"]


def test_summary(client, expense_form):
    create(client, {**expense_form, "amount": "100"})
    create(client, {**expense_form, "amount": "50"})
    create(client, {**expense_form, "amount": "30", "category": "labor"})
    data = client.get("/api/expenses/summary").json()["data"]
    assert data["summary"] == [
        {"_id": "material", "totalAmount": 150, "count": 2},
        {"_id": "labor", "totalAmount": 30, "count": 1},
    ]
    assert data["total"] == 180


def test_update_replaces_receipt(client, expense_form):
    expense = create(client, expense_form, ("a.jpg", b"first", "image/jpeg")).json()["data"]
    old = expense["receipt"]
    resp = client.put(
        f"/api/expenses/{expense['_id']}",
        data={"amount": "99"},
        files={"receipt": ("b.png", b"second", "image/png")},
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["amount"] == 99
    assert updated["receipt"] != old and updated["receipt"].endswith(".png")
    assert storage.exists(updated["receipt"])
    assert not storage.exists(old)
    assert updated["title"] == "Cement bags"


def test_update_missing_expense(client):
    resp = client.put("/api/expenses/65a000000000000000000000", data={"amount": "5"})
    assert resp.status_code == 404


def test_delete_removes_receipt(client, expense_form):
    expense = create(client, expense_form, ("a.jpg", b"x", "image/jpeg")).json()["data"]
    assert client.delete(f"/api/expenses/{expense['_id']}").status_code == 200
    assert not storage.exists(expense["receipt"])
    assert client.delete(f"/api/expenses/{expense['_id']}").status_code == 404

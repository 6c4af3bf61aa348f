"""Tests for the Flask API."""

import json
from pathlib import Path

import pytest
from flask.testing import FlaskClient

from finance_api.app import create_app

COFFEE = {"description": "Coffee", "amount": "3.50", "category": "Food", "date": "2024-03-09"}


@pytest.fixture
def client(data_dir: Path) -> FlaskClient:
    app = create_app(data_dir)
    app.config["TESTING"] = True
    return app.test_client()


def test_create_and_search(client: FlaskClient) -> None:
    created = client.post("/records", json=COFFEE)
    client.post("/records", json={**COFFEE, "description": "Novel", "category": "Books"})

    assert created.status_code == 201
    assert created.get_json()["amount"] == 3.5

    response = client.get("/records", query_string={"q": "food"})
    items = response.get_json()["items"]
    assert [item["description"] for item in items] == ["Coffee"]
    assert items[0]["highlights"]["category"] == [[0, 4]]

    strict = client.get("/records", query_string={"q": "food", "case_sensitive": "true"})
    assert strict.get_json()["count"] == 0


def test_validation_errors_list_fields(client: FlaskClient) -> None:
    response = client.post("/records", json={**COFFEE, "description": "go go", "amount": "01"})

    assert response.status_code == 400
    assert set(response.get_json()["fields"]) == {"description", "amount"}


def test_rejects_list_description(client: FlaskClient) -> None:
    response = client.post("/records", json={**COFFEE, "description": ["Lunch"]})

    assert response.status_code == 400
    assert set(response.get_json()["fields"]) == {"description"}
    assert client.get("/records").get_json()["count"] == 0


def test_update_and_delete(client: FlaskClient) -> None:
    record_id = client.post("/records", json=COFFEE).get_json()["id"]

    updated = client.put(f"/records/{record_id}", json={"amount": "5"})
    assert updated.status_code == 200
    assert updated.get_json()["amount"] == 5

    assert client.delete(f"/records/{record_id}").status_code == 204
    assert client.get(f"/records/{record_id}").status_code == 404
    assert client.delete(f"/records/{record_id}").status_code == 404


def test_sort(client: FlaskClient) -> None:
    for amount in ("5", "20", "12.5"):
        client.post("/records", json={**COFFEE, "amount": amount})

    response = client.post("/records/sort", json={"key": "amount"})

    assert [item["amount"] for item in response.get_json()["items"]] == [20, 12.5, 5]
    assert client.post("/records/sort", json={"key": "bogus"}).status_code == 400


def test_summary(client: FlaskClient) -> None:
    client.put("/settings", json={"spendingCap": 2})
    client.post("/records", json=COFFEE)

    payload = client.get("/summary", query_string={"today": "2024-03-10"}).get_json()

    assert payload["totalCount"] == 1
    assert payload["budget"] == {"state": "over_budget", "cap": "2.00", "amount": "1.50"}
    assert payload["trend"][-2]["total"] == "3.50"
    assert client.get("/summary", query_string={"today": "yesterday"}).status_code == 400


def test_categories(client: FlaskClient) -> None:
    assert client.post("/settings/categories", json={"name": "Rent"}).status_code == 201
    assert client.post("/settings/categories", json={"name": "Rent"}).status_code == 400
    assert client.delete("/settings/categories/Other").status_code == 204
    assert client.delete("/settings/categories/Other").status_code == 404

    categories = client.get("/settings").get_json()["categories"]
    assert "Rent" in categories
    assert "Other" not in categories


def test_export_import(client: FlaskClient) -> None:
    client.post("/records", json=COFFEE)
    exported = client.get("/export")
    document = exported.get_json()

    assert "attachment" in exported.headers["Content-Disposition"]

    bad = client.post("/import", data='{"records": [{"id": "x"}], "settings": {}}')
    assert bad.status_code == 400
    assert client.get("/records").get_json()["count"] == 1

    document["records"] = []
    good = client.post("/import", data=json.dumps(document))
    assert good.status_code == 200
    assert client.get("/records").get_json()["count"] == 0

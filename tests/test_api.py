from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stockledger.app import create_app
from stockledger.config import Settings
from stockledger.service import InventoryService


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_product_and_movement_flow(client: TestClient) -> None:
    # create product
    response = client.post("/products", json={"name": "Bolt", "quantity": 0, "min_quantity": 10, "category": "fasteners"})
    assert response.status_code == 201, response.text
    product_id = response.json()["id"]

    # inbound stock
    response = client.post("/movements", json={"product_id": product_id, "type": "INBOUND", "quantity": 50})
    assert response.status_code == 201, response.text
    assert response.json()["product_name"] == "Bolt"

    response = client.get(f"/products/{product_id}")
    assert response.status_code == 200
    assert response.json()["quantity"] == 50

    # outbound below zero
    response = client.post("/movements", json={"product_id": product_id, "type": "OUTBOUND", "quantity": 70})
    assert response.status_code == 201, response.text

    response = client.get("/products/low-stock")
    assert [p["id"] for p in response.json()] == [product_id]

    response = client.get("/movements")
    assert [m["type"] for m in response.json()] == ["OUTBOUND", "INBOUND"]

    # full-record update
    response = client.put(
        f"/products/{product_id}",
        json={"name": "Bolt M8", "quantity": 12, "min_quantity": 10, "category": "fasteners", "location": "A1"},
    )
    assert response.status_code == 200, response.text
    assert client.get(f"/products/{product_id}").json()["location"] == "A1"

    response = client.get("/products/search", params={"q": "a1"})
    assert [p["name"] for p in response.json()] == ["Bolt M8"]

    response = client.get("/products/paged", params={"search": "fast", "page": 1, "page_size": 5})
    assert response.status_code == 200
    page = response.json()
    assert page["totalItems"] == 1
    assert page["totalPages"] == 1
    assert page["pageSize"] == 5

    # cascade delete
    response = client.delete(f"/products/{product_id}")
    assert response.status_code == 200
    assert client.get("/movements").json() == []
    assert client.get("/products").json() == []


def test_errors_are_structured(client: TestClient) -> None:
    response = client.get("/products/999")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] is True
    assert body["code"] == "NOT_FOUND"

    response = client.post("/movements", json={"product_id": 999, "type": "INBOUND", "quantity": 1})
    assert response.status_code == 404
    assert response.json()["code"] == "REFERENTIAL_INTEGRITY"

    response = client.post("/movements", json={"product_id": 1, "type": "TRANSFER", "quantity": 1})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = client.post("/products", json={"name": "  "})
    assert response.status_code == 422
    assert response.json()["error"] is True

    response = client.put("/products/999", json={"name": "ghost"})
    assert response.status_code == 404

    response = client.get("/products/paged", params={"page_size": 0})
    assert response.status_code == 422


def test_export_csv(client: TestClient) -> None:
    client.post("/products", json={"name": 'Pipe 1/2"', "quantity": 4, "category": "plumbing"})
    client.post("/products", json={"name": "Elbow", "quantity": 2})

    response = client.get("/products/export.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "id,name,quantity,min_quantity,category,location"
    assert lines[1] == '"2","Elbow","2","0","",""'
    assert lines[2] == '"1","Pipe 1/2""","4","0","plumbing",""'

    rows = client.get("/products/export").json()
    assert [row["name"] for row in rows] == ["Elbow", 'Pipe 1/2"']


def test_unexpected_errors_are_structured(
    client: TestClient, service: InventoryService, monkeypatch: pytest.MonkeyPatch
) -> None:
    def explode():
        raise RuntimeError("index corrupted")

    monkeypatch.setattr(service.queries, "low_stock", explode)
    lenient = TestClient(client.app, raise_server_exceptions=False)

    response = lenient.get("/products/low-stock")
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"error": True, "code": "INTERNAL_ERROR", "message": "index corrupted"}


def test_owned_store_opens_on_startup(db_path: Path) -> None:
    app = create_app(Settings(database_path=db_path, log_level="warning"))
    assert not db_path.exists()

    with TestClient(app) as client:
        assert db_path.exists()
        response = client.post("/products", json={"name": "Washer"})
        assert response.status_code == 201
        assert client.get("/products").json()[0]["name"] == "Washer"

    assert not app.state.service.store.is_open

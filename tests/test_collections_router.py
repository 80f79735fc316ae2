"""
Tests for the collections endpoints.
"""
from fastapi.testclient import TestClient


class TestCollections:
    """Whole-collection read and replace."""

    def test_list(self, client: TestClient):
        response = client.get("/api/collections")

        assert response.status_code == 200
        assert "sales" in response.json()["collections"]
        assert "reconciliation_inputs" in response.json()["collections"]

    def test_read_empty(self, client: TestClient):
        response = client.get("/api/collections/sales")

        assert response.status_code == 200
        assert response.json() == {"name": "sales", "records": []}

    def test_replace_and_read(self, client: TestClient):
        records = [{"date": "2024-01-01", "netSales": 100}]

        response = client.put("/api/collections/sales", json={"records": records})

        assert response.status_code == 200
        assert client.get("/api/collections/sales").json()["records"] == records

    def test_unknown_collection(self, client: TestClient):
        assert client.get("/api/collections/suppliers").status_code == 404
        assert client.put("/api/collections/suppliers", json={"records": []}).status_code == 404

    def test_shape_mismatch(self, client: TestClient):
        response = client.put("/api/collections/reconciliation_inputs", json={"records": []})

        assert response.status_code == 422

    def test_keyed_collection(self, client: TestClient):
        payload = {"FLR__B__O": {"startQty": "10", "actualQty": "8", "note": ""}}

        response = client.put("/api/collections/reconciliation_inputs", json={"records": payload})

        assert response.status_code == 200
        assert response.json()["records"] == payload

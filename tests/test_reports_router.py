"""
Tests for the KPI, reconciliation and alert endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from restops.scripts.seed_demo import BRAND, seed
from restops.services.record_store import SqlRecordStore


BEEF_KEY = f"BEEF__{BRAND}__Abdoun"


@pytest.fixture
def seeded(db):
    seed(SqlRecordStore(db))
    return db


class TestKpiEndpoints:
    """KPI router."""

    def test_kpis(self, client: TestClient, seeded):
        response = client.get("/api/kpis")

        assert response.status_code == 200
        data = response.json()
        assert float(data["total_sales"]) == 54000
        assert float(data["ebitda"]) == 6600

    def test_kpis_filtered(self, client: TestClient, seeded):
        response = client.get("/api/kpis", params={"outlet": "Abdoun", "start_date": "2024-03-01"})

        assert response.status_code == 200
        assert float(response.json()["total_sales"]) == 12000

    def test_kpis_empty_store(self, client: TestClient):
        response = client.get("/api/kpis")

        assert response.status_code == 200
        assert float(response.json()["cogs_percent_of_sales"]) == 0

    def test_ebitda_history(self, client: TestClient, seeded):
        response = client.get("/api/kpis/ebitda-by-outlet")

        assert response.status_code == 200
        outlets = response.json()["outlets"]
        assert set(outlets) == {"Abdoun", "Sweifieh"}
        assert float(outlets["Sweifieh"]["2024-02"]) == -800

    def test_kpis_by_outlet(self, client: TestClient, seeded):
        response = client.get("/api/kpis/by-outlet", params={"start_date": "2024-01-01", "end_date": "2024-01-31"})

        assert response.status_code == 200
        outlets = response.json()["outlets"]
        assert [entry["outlet"] for entry in outlets] == ["Abdoun", "Sweifieh"]
        assert float(outlets[1]["kpis"]["ebitda"]) == -800


class TestReconciliationEndpoints:
    """Reconciliation router."""

    def test_report(self, client: TestClient, seeded):
        response = client.get("/api/reconciliation")

        assert response.status_code == 200
        data = response.json()
        assert [row["item_code"] for row in data["rows"]] == ["BEEF", "BUN", "FLR"]
        assert data["significant_keys"] == [BEEF_KEY]
        assert float(data["cost_threshold"]) == 25

    def test_threshold_query(self, client: TestClient, seeded):
        response = client.get("/api/reconciliation", params={"cost_threshold": 100, "pct_threshold": 50})

        assert response.status_code == 200
        assert response.json()["significant_keys"] == []

    def test_negative_threshold_rejected(self, client: TestClient, seeded):
        response = client.get("/api/reconciliation", params={"cost_threshold": -1})

        assert response.status_code == 422

    def test_update_input(self, client: TestClient, seeded):
        response = client.put("/api/reconciliation/inputs", json={
            "item_code": "BEEF",
            "brand": BRAND,
            "outlet": "Abdoun",
            "field": "note",
            "value": "Recounted",
        })

        assert response.status_code == 200
        assert response.json()["key"] == BEEF_KEY
        assert response.json()["note"] == "Recounted"

        rows = client.get("/api/reconciliation").json()["rows"]
        assert rows[0]["note"] == "Recounted"

    def test_update_unknown_field(self, client: TestClient, seeded):
        response = client.put("/api/reconciliation/inputs", json={
            "item_code": "BEEF", "field": "unitCost", "value": 3,
        })

        assert response.status_code == 422

    def test_push_rejects_negative_thresholds(self, client: TestClient, seeded):
        response = client.post("/api/reconciliation/push-to-action-plan", json={"cost_threshold": -1})

        assert response.status_code == 422
        assert client.get("/api/collections/action_items").json()["records"] == []

    def test_push(self, client: TestClient, seeded):
        response = client.post("/api/reconciliation/push-to-action-plan", json={"check_date": "2024-03-31"})

        assert response.status_code == 200
        data = response.json()
        assert data["created"] == 1
        assert data["items"][0]["source_key"] == BEEF_KEY

        stored = client.get("/api/collections/action_items").json()["records"]
        assert len(stored) == 1


class TestAlertEndpoints:
    """Alerts router."""

    def test_alerts(self, client: TestClient, seeded):
        response = client.get("/api/alerts")

        assert response.status_code == 200
        data = response.json()
        assert [alert["rule_id"] for alert in data["alerts"]] == ["ebitda-2m", "inventory-variance"]
        assert float(data["labor_pct"]) == 30

    def test_default_rules(self, client: TestClient):
        response = client.get("/api/alerts/rules")

        assert response.status_code == 200
        assert [rule["id"] for rule in response.json()["rules"]] == [
            "food-cost", "labor-cost", "ebitda-2m", "inventory-variance",
        ]

    def test_replace_rules(self, client: TestClient, seeded):
        response = client.put("/api/alerts/rules", json={"rules": [
            {"id": "labor", "type": "laborPct", "threshold": 20, "enabled": True},
        ]})

        assert response.status_code == 200
        alerts = client.get("/api/alerts").json()["alerts"]
        assert [alert["rule_id"] for alert in alerts] == ["labor"]

    def test_replace_rules_invalid(self, client: TestClient):
        response = client.put("/api/alerts/rules", json={"rules": [{"id": "x", "type": "unknown"}]})

        assert response.status_code == 422

    def test_push_alerts(self, client: TestClient, seeded):
        response = client.post("/api/alerts/push-to-action-plan", json={})

        assert response.status_code == 200
        assert response.json()["created"] == 2

"""
Tests for the operations service over the demo data set.
"""
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from restops.core.config import Settings
from restops.scripts.seed_demo import BRAND, seed
from restops.services import record_store as collections
from restops.services.operations import OperationsService, ReportFilters
from restops.services.reconciliation import ReconciliationKey, ReconciliationThresholds


BEEF_KEY = ReconciliationKey("BEEF", BRAND, "Abdoun")


@pytest.fixture
def service(store):
    seed(store)
    return OperationsService(store, Settings())


class TestKpis:
    """KPI slices."""

    def test_group_totals(self, service):
        kpis = service.kpis()

        assert kpis.total_sales == Decimal("54000")
        assert kpis.total_purchases == Decimal("21300")
        assert kpis.depreciation_amortization == Decimal("1200")
        assert kpis.ebitda == Decimal("6600")
        assert kpis.net_profit == Decimal("5400")

    def test_outlet_and_month_slice(self, service):
        filters = ReportFilters(outlet="Sweifieh", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))

        kpis = service.kpis(filters)

        assert kpis.total_sales == Decimal("6000")
        assert kpis.ebitda == Decimal("-800")

    def test_ebitda_history(self, service):
        history = service.ebitda_history()

        assert history["Abdoun"] == {m: Decimal("3000") for m in ("2024-01", "2024-02", "2024-03")}
        assert set(history["Sweifieh"].values()) == {Decimal("-800")}

    def test_kpis_by_outlet(self, service, store):
        store.append(collections.SALES, [{"date": "2024-03-20", "netSales": 100}])

        breakdown = dict(service.kpis_by_outlet())

        assert list(breakdown) == ["Abdoun", "All / Unassigned", "Sweifieh"]
        assert breakdown["Abdoun"].total_sales == Decimal("36000")
        assert breakdown["Sweifieh"].ebitda == Decimal("-2400")
        assert breakdown["All / Unassigned"].total_sales == Decimal("100")


class TestReconciliation:
    """Variance report."""

    def test_report(self, service):
        report = service.reconciliation()

        beef = report.rows[0]
        assert [row.item_code for row in report.rows] == ["BEEF", "BUN", "FLR"]
        assert beef.theoretical_usage_qty == Decimal("412")
        assert beef.variance_qty == Decimal("-18")
        assert beef.variance_cost == Decimal("-21.6")
        assert [row.item_code for row in report.significant] == ["BEEF"]
        assert report.unmatched_waste == 0

    def test_date_window_limits_waste(self, service):
        filters = ReportFilters(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))

        report = service.reconciliation(filters)

        assert report.rows[0].theoretical_usage_qty == Decimal("400")

    def test_outlet_without_inventory(self, service):
        assert service.reconciliation(ReportFilters(outlet="Sweifieh")).rows == []

    def test_threshold_override(self, service):
        report = service.reconciliation(thresholds=ReconciliationThresholds(cost=Decimal(100), pct=None))

        assert report.significant == []

    def test_update_input(self, service, store):
        counts = service.update_reconciliation_input(BEEF_KEY, "actualQty", "88")

        assert counts.actual_qty == Decimal("88")
        assert counts.start_qty == Decimal("500")
        assert store.read(collections.RECONCILIATION_INPUTS)[BEEF_KEY.storage_key()]["actualQty"] == "88"
        assert service.reconciliation().significant == []


class TestAlerts:
    """Alert evaluation with stored or default rules."""

    def test_default_rules(self, service):
        report = service.alerts()

        assert [(a.rule_id, a.subject) for a in report.alerts] == [
            ("ebitda-2m", "Sweifieh"),
            ("inventory-variance", BEEF_KEY.storage_key()),
        ]

    def test_saved_rules(self, service, store):
        service.save_alert_rules([
            {"id": "food", "type": "foodCostPct", "threshold": 35},
            {"id": "ebitda", "type": "ebitdaNegativeMonths", "threshold": 0, "windowMonths": 4},
        ])

        report = service.alerts()

        assert [a.rule_id for a in report.alerts] == ["food"]
        assert store.read(collections.ALERT_RULES)[0]["type"] == "foodCostPct"

    def test_variance_alerts_ignore_push_thresholds(self, store):
        seed(store)
        strict = Settings(VARIANCE_COST_THRESHOLD=Decimal(1000), VARIANCE_PCT_THRESHOLD=Decimal(1000))
        service = OperationsService(store, strict)

        report = service.alerts()

        assert service.reconciliation().significant == []
        assert "inventory-variance" in [a.rule_id for a in report.alerts]

    def test_save_rejects_invalid_rule(self, service):
        with pytest.raises(ValidationError):
            service.save_alert_rules([{"id": "x", "type": "nope"}])


class TestActionPlan:
    """Pushing findings to the action plan."""

    def test_push_variances_appends_every_time(self, service, store):
        first = service.push_variances_to_action_plan(check_date=date(2024, 3, 31))
        service.push_variances_to_action_plan(check_date=date(2024, 3, 31))

        stored = store.read(collections.ACTION_ITEMS)
        assert len(first) == 1
        assert len(stored) == 2
        assert stored[0]["sourceKey"] == BEEF_KEY.storage_key()
        assert "JOD" in stored[0]["description"]

    def test_push_alerts(self, service, store):
        items = service.push_alerts_to_action_plan()

        assert [item.area for item in items] == ["Profitability", "Waste & Inventory"]
        assert len(store.read(collections.ACTION_ITEMS)) == 2

    def test_nothing_to_push(self, store):
        service = OperationsService(store, Settings())

        assert service.push_variances_to_action_plan() == []
        assert store.read(collections.ACTION_ITEMS) == []

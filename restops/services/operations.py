"""
Operations Service.

Loads collections from a RecordStore, applies the dashboard filters and runs
the KPI / usage / reconciliation / alerting pipeline. Everything is
recomputed from source records on each call; the only writes are the
caller-initiated updates (reconciliation inputs, alert rules) and appends to
the action plan.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from restops.core.config import Settings, get_settings
from restops.core.records import DateRange
from restops.schemas.alert_rules import AlertRule, parse_alert_rule, parse_alert_rules
from restops.services import record_store as collections
from restops.services.action_items import ActionItem, ActionItemContext, emit_action_items
from restops.services.alerts import Alert, evaluate_alerts
from restops.services.kpi_aggregator import (
    KpiSnapshot,
    compute_ebitda_by_outlet,
    compute_kpis,
    compute_monthly_ebitda_by_outlet,
    filter_records,
)
from restops.services.reconciliation import (
    ReconciliationInput,
    ReconciliationKey,
    ReconciliationThresholds,
    VarianceRow,
    VarianceSummary,
    inputs_to_storage,
    normalize_inputs,
    reconcile,
    set_reconciliation_input,
    significant_variances,
    summarize_variance,
)
from restops.services.record_store import RecordStore
from restops.services.usage_resolver import UsageResolution, resolve_usage_details

logger = logging.getLogger(__name__)


@dataclass
class ReportFilters:
    """Dashboard slice. None or "all" means no restriction."""
    brand: Optional[str] = None
    outlet: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)


@dataclass
class ReconciliationReport:
    rows: list[VarianceRow]
    summary: VarianceSummary
    significant: list[VarianceRow]
    thresholds: ReconciliationThresholds
    unmatched_waste: int = 0
    ambiguous_waste: int = 0


@dataclass
class AlertReport:
    alerts: list[Alert]
    kpis: KpiSnapshot
    rules: list[AlertRule] = field(default_factory=list)


class OperationsService:
    """
    Runs the engine over the collections held by a record store.

    Thresholds default to the configured settings and can be overridden per
    call.
    """

    def __init__(self, store: RecordStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    # ---- loading ----

    def _rows(self, name: str, filters: ReportFilters, by_date: bool = True) -> list[dict]:
        records = self.store.read(name)
        return filter_records(
            records,
            brand=filters.brand,
            outlet=filters.outlet,
            date_range=filters.date_range if by_date else None,
        )

    def default_thresholds(self) -> ReconciliationThresholds:
        return ReconciliationThresholds(
            cost=self.settings.VARIANCE_COST_THRESHOLD,
            pct=self.settings.VARIANCE_PCT_THRESHOLD,
        )

    # ---- KPIs ----

    def kpis(self, filters: Optional[ReportFilters] = None) -> KpiSnapshot:
        filters = filters or ReportFilters()
        return compute_kpis(
            sales=self._rows(collections.SALES, filters),
            purchases=self._rows(collections.PURCHASES, filters),
            waste=self._rows(collections.WASTE, filters),
            overhead=self._rows(collections.OVERHEAD, filters),
            labor=self._rows(collections.LABOR, filters),
        )

    def ebitda_history(self, filters: Optional[ReportFilters] = None) -> dict[str, dict[str, Decimal]]:
        filters = filters or ReportFilters()
        return compute_monthly_ebitda_by_outlet(
            sales=self._rows(collections.SALES, filters),
            purchases=self._rows(collections.PURCHASES, filters),
            overhead=self._rows(collections.OVERHEAD, filters),
            labor=self._rows(collections.LABOR, filters),
            unassigned_label=self.settings.UNASSIGNED_OUTLET_LABEL,
        )

    def kpis_by_outlet(self, filters: Optional[ReportFilters] = None) -> list[tuple[str, KpiSnapshot]]:
        filters = filters or ReportFilters()
        return compute_ebitda_by_outlet(
            sales=self._rows(collections.SALES, filters),
            purchases=self._rows(collections.PURCHASES, filters),
            waste=self._rows(collections.WASTE, filters),
            overhead=self._rows(collections.OVERHEAD, filters),
            labor=self._rows(collections.LABOR, filters),
            unassigned_label=self.settings.UNASSIGNED_OUTLET_LABEL,
        )

    # ---- inventory ----

    def usage_resolution(self, filters: Optional[ReportFilters] = None) -> UsageResolution:
        filters = filters or ReportFilters()
        resolution = resolve_usage_details(
            recipes=self.store.read(collections.RECIPES),
            menu_sales=self._rows(collections.MENU_SALES, filters),
            waste_records=self._rows(collections.WASTE, filters, by_date=False),
            inventory_items=self.store.read(collections.INVENTORY),
            date_range=filters.date_range,
        )
        dropped = len(resolution.unmatched_waste) + len(resolution.ambiguous_waste)
        if dropped:
            logger.info(f"{dropped} waste row(s) could not be linked to an inventory code")
        return resolution

    def theoretical_usage(self, filters: Optional[ReportFilters] = None) -> dict[str, Decimal]:
        return self.usage_resolution(filters).usage

    def reconciliation_inputs(self) -> dict[ReconciliationKey, ReconciliationInput]:
        return normalize_inputs(self.store.read(collections.RECONCILIATION_INPUTS))

    def reconciliation(
        self,
        filters: Optional[ReportFilters] = None,
        thresholds: Optional[ReconciliationThresholds] = None,
    ) -> ReconciliationReport:
        filters = filters or ReportFilters()
        thresholds = thresholds or self.default_thresholds()
        resolution = self.usage_resolution(filters)
        rows = reconcile(
            self.store.read(collections.INVENTORY),
            resolution.usage,
            self.reconciliation_inputs(),
            brand=filters.brand or "all",
            outlet=filters.outlet or "all",
        )
        return ReconciliationReport(
            rows=rows,
            summary=summarize_variance(rows),
            significant=significant_variances(rows, thresholds),
            thresholds=thresholds,
            unmatched_waste=len(resolution.unmatched_waste),
            ambiguous_waste=len(resolution.ambiguous_waste),
        )

    def update_reconciliation_input(self, key: ReconciliationKey, field_name: str, value: Any) -> ReconciliationInput:
        """Set one field of one item's counts, creating the input on first edit."""
        updated = set_reconciliation_input(self.reconciliation_inputs(), key, field_name, value)
        self.store.write(collections.RECONCILIATION_INPUTS, inputs_to_storage(updated))
        return updated[key]

    # ---- alerts ----

    def alert_rules(self) -> list[AlertRule]:
        return parse_alert_rules(self.store.read(collections.ALERT_RULES))

    def save_alert_rules(self, rules: Iterable[Any]) -> list[AlertRule]:
        """Validate and store rules. Invalid rules raise instead of being skipped."""
        parsed = [parse_alert_rule(rule) for rule in rules]
        self.store.write(collections.ALERT_RULES, [rule.to_record() for rule in parsed])
        return parsed

    def alerts(self, filters: Optional[ReportFilters] = None) -> AlertReport:
        """Variance alerts use each rule's own thresholds, not the push thresholds."""
        filters = filters or ReportFilters()
        rules = self.alert_rules()
        kpis = self.kpis(filters)
        report = self.reconciliation(filters)
        alerts = evaluate_alerts(rules, kpis, report.rows, self.ebitda_history(filters))
        return AlertReport(alerts=alerts, kpis=kpis, rules=rules)

    # ---- action plan ----

    def _context(self, check_date: Optional[date]) -> ActionItemContext:
        return ActionItemContext(check_date=check_date or date.today(), currency=self.settings.CURRENCY)

    def _push(self, items: list[ActionItem]) -> list[ActionItem]:
        if items:
            self.store.append(collections.ACTION_ITEMS, [item.to_record() for item in items])
        return items

    def push_variances_to_action_plan(
        self,
        filters: Optional[ReportFilters] = None,
        thresholds: Optional[ReconciliationThresholds] = None,
        check_date: Optional[date] = None,
    ) -> list[ActionItem]:
        """Append one investigation task per significant variance. Not deduplicated."""
        report = self.reconciliation(filters, thresholds)
        return self._push(emit_action_items(report.significant, self._context(check_date)))

    def push_alerts_to_action_plan(
        self,
        filters: Optional[ReportFilters] = None,
        check_date: Optional[date] = None,
    ) -> list[ActionItem]:
        report = self.alerts(filters)
        return self._push(emit_action_items(report.alerts, self._context(check_date)))

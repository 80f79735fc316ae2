"""
Alert/Threshold Evaluator.

Applies the configured alert rules to the KPI snapshot, the variance rows
and the per-outlet monthly EBITDA history. Produces one Alert per
(rule, triggering entity); the same outlet or item can be flagged by
several rules.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from restops.core.records import to_decimal
from restops.schemas.alert_rules import (
    AlertRule,
    EbitdaNegativeMonthsRule,
    FoodCostPctRule,
    LaborPctRule,
    VarianceCostRule,
    VariancePctRule,
    parse_alert_rule,
)
from restops.services.kpi_aggregator import KpiSnapshot
from restops.services.reconciliation import VarianceRow, is_significant

logger = logging.getLogger(__name__)


OVERALL_SUBJECT = "overall"


@dataclass
class Alert:
    """A triggered rule for one entity (overall KPIs, an outlet, or an item)."""
    rule_id: str
    metric_type: str
    level: str  # "high" or "critical"
    subject: str
    value: Optional[Decimal]
    threshold: Decimal
    message: str
    variance_row: Optional[VarianceRow] = None


def trailing_negative_streak(monthly_ebitda: Mapping[str, Any], limit: Decimal = Decimal(0)) -> int:
    """
    Count the most recent consecutive months with EBITDA below `limit`.

    Months are ordered by their "YYYY-MM" key. Any month at or above the
    limit resets the streak, so only the trailing run counts.
    """
    streak = 0
    for month in sorted(monthly_ebitda):
        ebitda = to_decimal(monthly_ebitda[month])
        if ebitda < limit:
            streak += 1
        else:
            streak = 0
    return streak


class AlertEvaluator:
    """
    Evaluates enabled rules against aggregated and reconciled data.

    Disabled rules are skipped before any evaluation happens.
    """

    def __init__(
        self,
        kpis: KpiSnapshot,
        variance_rows: Optional[Sequence[VarianceRow]] = None,
        ebitda_history: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ):
        self.kpis = kpis
        self.variance_rows = list(variance_rows or [])
        self.ebitda_history = ebitda_history or {}

    def evaluate(self, rules: Iterable[AlertRule]) -> list[Alert]:
        alerts: list[Alert] = []
        for rule in rules:
            if not rule.enabled:
                continue
            alerts.extend(self.evaluate_rule(rule))
        return alerts

    def evaluate_rule(self, rule: AlertRule) -> list[Alert]:
        if isinstance(rule, FoodCostPctRule):
            return self._percent_alert(rule, self.kpis.cogs_percent_of_sales, "Food cost")
        if isinstance(rule, LaborPctRule):
            return self._percent_alert(rule, self.kpis.labor_percent_of_sales, "Labor cost")
        if isinstance(rule, EbitdaNegativeMonthsRule):
            return self._ebitda_streak_alerts(rule)
        if isinstance(rule, VarianceCostRule):
            return self._variance_alerts(rule, cost_threshold=rule.threshold, pct_threshold=rule.pct_threshold)
        if isinstance(rule, VariancePctRule):
            return self._variance_alerts(rule, cost_threshold=rule.cost_threshold, pct_threshold=rule.threshold)
        raise TypeError(f"Unsupported alert rule type: {type(rule).__name__}")

    def _percent_alert(self, rule: AlertRule, value: Decimal, label: str) -> list[Alert]:
        if value <= rule.threshold:
            return []
        return [Alert(
            rule_id=rule.id,
            metric_type=rule.metric_type,
            level="high",
            subject=OVERALL_SUBJECT,
            value=value,
            threshold=rule.threshold,
            message=f"{label} is {value:.1f}% (limit {rule.threshold}%).",
        )]

    def _ebitda_streak_alerts(self, rule: EbitdaNegativeMonthsRule) -> list[Alert]:
        window = 2 if rule.window_months is None else rule.window_months
        if window <= 0:
            return []

        alerts = []
        for outlet in sorted(self.ebitda_history):
            streak = trailing_negative_streak(self.ebitda_history[outlet], rule.threshold)
            if streak < window:
                continue
            alerts.append(Alert(
                rule_id=rule.id,
                metric_type=rule.metric_type,
                level="critical",
                subject=outlet,
                value=Decimal(streak),
                threshold=Decimal(window),
                message=f"EBITDA negative for {streak} consecutive month(s) in outlet {outlet} (limit {window}).",
            ))
        return alerts

    def _variance_alerts(
        self,
        rule: AlertRule,
        cost_threshold: Optional[Decimal],
        pct_threshold: Optional[Decimal],
    ) -> list[Alert]:
        alerts = []
        for row in self.variance_rows:
            if not is_significant(row, cost_threshold, pct_threshold):
                continue
            pct_text = "n/a" if row.variance_pct is None else f"{row.variance_pct:.1f}%"
            alerts.append(Alert(
                rule_id=rule.id,
                metric_type=rule.metric_type,
                level="high",
                subject=row.key.storage_key(),
                value=row.variance_cost if rule.metric_type == "varianceCost" else row.variance_pct,
                threshold=rule.threshold,
                message=(
                    f"Inventory variance for {row.item_name or row.item_code}: "
                    f"{row.variance_qty:.3f} {row.unit} ({row.variance_cost:.3f}, {pct_text})."
                ),
                variance_row=row,
            ))
        return alerts


def _coerce_rules(rules: Optional[Iterable[Any]]) -> list[AlertRule]:
    parsed = []
    for rule in rules or []:
        try:
            parsed.append(parse_alert_rule(rule))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Ignoring invalid alert rule {rule!r}: {e}")
    return parsed


def evaluate_alerts(
    rules: Optional[Iterable[Any]],
    kpis: KpiSnapshot,
    variance_rows: Optional[Sequence[VarianceRow]] = None,
    ebitda_history: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> list[Alert]:
    """
    Evaluate rules (model instances or stored dicts) and return triggered alerts.

    An empty rule list yields no alerts; defaults are only applied when
    loading rules from storage.
    """
    evaluator = AlertEvaluator(kpis, variance_rows, ebitda_history)
    return evaluator.evaluate(_coerce_rules(rules))

"""
Alert rule configuration.

Rules are a closed tagged union on `metric_type`, so the evaluator's
dispatch covers every variant. Stored rules use the camelCase shape the
admin screen writes ({"id", "type", "threshold", "windowMonths", ...});
parse_alert_rules accepts that shape and to_record writes it back.
"""
import logging
from decimal import Decimal
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class BaseAlertRule(BaseModel):
    """Fields shared by every rule."""
    id: str
    label: str = ""
    description: str = ""
    threshold: Decimal = Decimal(0)
    enabled: bool = True

    def to_record(self) -> dict:
        record = {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "type": self.metric_type,
            "threshold": str(self.threshold),
            "windowMonths": None,
            "enabled": self.enabled,
        }
        return record


class FoodCostPctRule(BaseAlertRule):
    """COGS % of sales above threshold."""
    metric_type: Literal["foodCostPct"] = "foodCostPct"


class LaborPctRule(BaseAlertRule):
    """Labor % of sales above threshold."""
    metric_type: Literal["laborPct"] = "laborPct"


class EbitdaNegativeMonthsRule(BaseAlertRule):
    """
    Outlet EBITDA below `threshold` (0 = negative) for the trailing
    `window_months` months. A window of 0 or less makes the rule inert.
    """
    metric_type: Literal["ebitdaNegativeMonths"] = "ebitdaNegativeMonths"
    window_months: Optional[int] = 2

    def to_record(self) -> dict:
        record = super().to_record()
        record["windowMonths"] = self.window_months
        return record


class VarianceCostRule(BaseAlertRule):
    """
    Inventory variance cost at or above `threshold`, OR variance percent at
    or above `pct_threshold` when one is set.
    """
    metric_type: Literal["varianceCost"] = "varianceCost"
    pct_threshold: Optional[Decimal] = None

    def to_record(self) -> dict:
        record = super().to_record()
        record["pctThreshold"] = None if self.pct_threshold is None else str(self.pct_threshold)
        return record


class VariancePctRule(BaseAlertRule):
    """
    Inventory variance percent at or above `threshold`, OR variance cost at
    or above `cost_threshold` when one is set.
    """
    metric_type: Literal["variancePct"] = "variancePct"
    cost_threshold: Optional[Decimal] = None

    def to_record(self) -> dict:
        record = super().to_record()
        record["costThreshold"] = None if self.cost_threshold is None else str(self.cost_threshold)
        return record


AlertRule = Annotated[
    Union[FoodCostPctRule, LaborPctRule, EbitdaNegativeMonthsRule, VarianceCostRule, VariancePctRule],
    Field(discriminator="metric_type"),
]

METRIC_TYPES = ("foodCostPct", "laborPct", "ebitdaNegativeMonths", "varianceCost", "variancePct")

_rule_adapter = TypeAdapter(AlertRule)

# camelCase storage keys -> model field names
_FIELD_ALIASES = {
    "metricType": "metric_type",
    "type": "metric_type",
    "windowMonths": "window_months",
    "pctThreshold": "pct_threshold",
    "costThreshold": "cost_threshold",
}


DEFAULT_ALERT_RULES: list[AlertRule] = [
    FoodCostPctRule(
        id="food-cost",
        label="Food cost % > threshold",
        description="Triggers when total food cost (purchases / sales) is higher than your set limit.",
        threshold=Decimal(40),
    ),
    LaborPctRule(
        id="labor-cost",
        label="Labor % > threshold",
        description="Triggers when total labor cost (HR / sales) is higher than your set limit.",
        threshold=Decimal(30),
    ),
    EbitdaNegativeMonthsRule(
        id="ebitda-2m",
        label="Outlet EBITDA < 0 for N consecutive months",
        description="Triggers when any outlet has negative EBITDA for N consecutive months.",
        threshold=Decimal(0),
        window_months=2,
    ),
    VarianceCostRule(
        id="inventory-variance",
        label="Inventory variance above threshold",
        description="Triggers for each item whose variance cost or variance % reaches the limit.",
        threshold=Decimal(25),
        pct_threshold=Decimal(10),
    ),
]


def _normalize_keys(raw: dict) -> dict:
    normalized = {}
    for key, value in raw.items():
        target = _FIELD_ALIASES.get(key, key)
        # Explicit snake_case keys win over aliases
        if target in normalized and key != target:
            continue
        normalized[target] = value
    if normalized.get("enabled") is None:
        normalized["enabled"] = True
    return normalized


def parse_alert_rule(raw: Any) -> AlertRule:
    """Validate one stored rule. Raises pydantic ValidationError if invalid."""
    if isinstance(raw, BaseAlertRule):
        return raw
    if not isinstance(raw, dict):
        raise TypeError(f"Alert rule must be a mapping, got {type(raw).__name__}")
    return _rule_adapter.validate_python(_normalize_keys(raw))


def parse_alert_rules(raw_rules: Optional[Iterable[Any]]) -> list[AlertRule]:
    """
    Parse stored rules, skipping invalid entries.

    Falls back to DEFAULT_ALERT_RULES when nothing is stored or nothing
    valid remains.
    """
    rules = []
    for raw in raw_rules or []:
        try:
            rules.append(parse_alert_rule(raw))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping invalid alert rule {raw!r}: {e}")
    if not rules:
        return [rule.model_copy() for rule in DEFAULT_ALERT_RULES]
    return rules

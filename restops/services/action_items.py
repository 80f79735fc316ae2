"""
Action-Item Emitter.

Turns triggered alerts and significant variance rows into task records for
the action plan. Pure templating: every call mints fresh ids and timestamps
and nothing is deduplicated against earlier emissions, so callers track what
they already pushed (see ActionItem.source_key).
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Union
from uuid import uuid4

from restops.services.alerts import Alert
from restops.services.reconciliation import VarianceRow


VARIANCE_AREA = "Waste & Inventory"
VARIANCE_SOURCE = "inventory-reconciliation"
ALERT_SOURCE = "alert-rules"

AREA_BY_METRIC = {
    "foodCostPct": "Food Cost",
    "laborPct": "Labor",
    "ebitdaNegativeMonths": "Profitability",
    "varianceCost": VARIANCE_AREA,
    "variancePct": VARIANCE_AREA,
}


@dataclass
class ActionItemContext:
    """Presentation context for generated tasks."""
    check_date: Optional[date] = None
    currency: str = "JOD"
    owner: str = ""
    due_date: str = ""


@dataclass
class ActionItem:
    """Task record for the action plan."""
    area: str
    title: str
    description: str
    source: str
    source_key: str
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    owner: str = ""
    status: str = "Open"
    priority: str = "High"
    due_date: str = ""
    kpi: str = ""
    brand: str = ""
    outlet: str = ""

    def to_record(self) -> dict:
        """Storage shape read by the task tracker."""
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "area": self.area,
            "title": self.title,
            "description": self.description,
            "owner": self.owner,
            "status": self.status,
            "priority": self.priority,
            "dueDate": self.due_date,
            "source": self.source,
            "sourceKey": self.source_key,
            "kpi": self.kpi,
            "brand": self.brand,
            "outlet": self.outlet,
        }


def format_quantity(value: Optional[Decimal], digits: int = 3) -> str:
    if value is None:
        return f"{0:.{digits}f}"
    return f"{value:.{digits}f}"


def variance_action_item(row: VarianceRow, context: ActionItemContext) -> ActionItem:
    label = row.item_name or row.item_code
    unit = row.unit
    check_date = (context.check_date or date.today()).isoformat()
    description = (
        f"Variance detected for {label} ({row.brand or 'All brands'} / "
        f"{row.outlet or 'All outlets'}) on {check_date}.\n\n"
        f"Theoretical stock: {format_quantity(row.theoretical_qty)} {unit}\n"
        f"Actual count: {format_quantity(row.actual_qty)} {unit}\n"
        f"Variance: {format_quantity(row.variance_qty)} {unit} "
        f"({format_quantity(row.variance_cost)} {context.currency}).\n\n"
        "Suggested actions: check portioning, waste logging, theft/shrinkage, "
        "and recording of deliveries."
    )
    return ActionItem(
        area=VARIANCE_AREA,
        title=f"Investigate inventory variance - {label}",
        description=description,
        source=VARIANCE_SOURCE,
        source_key=row.key.storage_key(),
        owner=context.owner,
        due_date=context.due_date,
        kpi="Inventory variance",
        brand=row.brand,
        outlet=row.outlet,
    )


def alert_action_item(alert: Alert, context: ActionItemContext) -> ActionItem:
    if alert.variance_row is not None:
        item = variance_action_item(alert.variance_row, context)
        item.source = ALERT_SOURCE
        item.source_key = f"{alert.rule_id}:{alert.subject}"
        return item

    area = AREA_BY_METRIC.get(alert.metric_type, "General")
    outlet = "" if alert.subject == "overall" else alert.subject
    where = f" - {outlet}" if outlet else ""
    return ActionItem(
        area=area,
        title=f"Review {area.lower()}{where}",
        description=f"{alert.message}\n\nTriggered by rule '{alert.rule_id}'.",
        source=ALERT_SOURCE,
        source_key=f"{alert.rule_id}:{alert.subject}",
        owner=context.owner,
        due_date=context.due_date,
        kpi=alert.metric_type,
        outlet=outlet,
    )


def emit_action_items(
    sources: Iterable[Union[Alert, VarianceRow]],
    context: Optional[ActionItemContext] = None,
) -> list[ActionItem]:
    """One task per alert or variance row, in input order."""
    context = context or ActionItemContext()
    items = []
    for source in sources:
        if isinstance(source, VarianceRow):
            items.append(variance_action_item(source, context))
        elif isinstance(source, Alert):
            items.append(alert_action_item(source, context))
        else:
            raise TypeError(f"Cannot emit an action item for {type(source).__name__}")
    return items

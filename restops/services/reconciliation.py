"""
Inventory Reconciliation Engine.

Compares theoretical stock (opening count minus theoretical usage) against
the physical count per inventory item.

Variance Model:
theoretical_qty = start_qty - theoretical_usage_qty
variance_qty = actual_qty - theoretical_qty
variance_cost = variance_qty × unit_cost
variance_pct = variance_qty / theoretical_qty × 100  (None when theoretical_qty = 0)
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Mapping, NamedTuple, Optional, Sequence, Union

from restops.core.records import ZERO, number_field, text_field, to_decimal


Record = Mapping[str, Any]

STORAGE_KEY_SEPARATOR = "__"


def _raw_segment(item: Record, field: str) -> str:
    value = item.get(field) if isinstance(item, Mapping) else None
    return str(value) if value else ""


class ReconciliationKey(NamedTuple):
    """Identity of a reconciliation input. Empty segments are valid values."""
    item_code: str
    brand: str
    outlet: str

    def storage_key(self) -> str:
        """Persisted key format: itemCode__brand__outlet."""
        return STORAGE_KEY_SEPARATOR.join(self)

    @classmethod
    def from_storage_key(cls, key: str) -> "ReconciliationKey":
        parts = key.split(STORAGE_KEY_SEPARATOR)
        if len(parts) < 3:
            parts += [""] * (3 - len(parts))
        elif len(parts) > 3:
            # Item codes may themselves contain the separator
            parts = [STORAGE_KEY_SEPARATOR.join(parts[:-2]), parts[-2], parts[-1]]
        return cls(*parts)

    @classmethod
    def for_item(cls, item: Record) -> "ReconciliationKey":
        """Key from the raw itemCode, brand and outlet values, as stored inputs use them."""
        return cls(
            item_code=_raw_segment(item, "itemCode"),
            brand=_raw_segment(item, "brand"),
            outlet=_raw_segment(item, "outlet"),
        )


@dataclass(frozen=True)
class ReconciliationInput:
    """User-entered counts for one item. Blank counts read as 0."""
    start_qty: Decimal = ZERO
    actual_qty: Decimal = ZERO
    note: str = ""

    @classmethod
    def from_record(cls, record: Optional[Record]) -> "ReconciliationInput":
        if not isinstance(record, Mapping):
            return cls()
        return cls(
            start_qty=number_field(record, "startQty"),
            actual_qty=number_field(record, "actualQty"),
            note=text_field(record, "note"),
        )

    def to_record(self) -> dict:
        return {
            "startQty": str(self.start_qty),
            "actualQty": str(self.actual_qty),
            "note": self.note,
        }


@dataclass(frozen=True)
class ReconciliationThresholds:
    """Variance is significant if either threshold is reached."""
    cost: Optional[Decimal] = Decimal("25")
    pct: Optional[Decimal] = Decimal("10")


@dataclass
class VarianceRow:
    """Theoretical vs actual stock for one inventory item."""
    key: ReconciliationKey
    item_code: str
    item_name: str
    brand: str
    outlet: str
    unit: str
    unit_cost: Decimal
    start_qty: Decimal
    theoretical_usage_qty: Decimal
    theoretical_qty: Decimal
    actual_qty: Decimal
    variance_qty: Decimal
    variance_cost: Decimal
    variance_pct: Optional[Decimal]  # None = not applicable, never "0% variance"
    note: str = ""


@dataclass
class VarianceSummary:
    total_variance_cost: Decimal
    total_theoretical_qty: Decimal
    total_variance_pct: Optional[Decimal]


InputKey = Union[ReconciliationKey, str]
InputValue = Union[ReconciliationInput, Record]


def item_outlet(item: Record) -> str:
    return text_field(item, "outlet", "defaultOutlet")


def item_unit_cost(item: Record) -> Decimal:
    return number_field(item, "unitCost", "lastCost", "avgCost")


def normalize_inputs(
    inputs: Optional[Mapping[InputKey, InputValue]],
) -> dict[ReconciliationKey, ReconciliationInput]:
    """Accept inputs keyed by ReconciliationKey or by stored key string."""
    normalized: dict[ReconciliationKey, ReconciliationInput] = {}
    for key, value in (inputs or {}).items():
        if not isinstance(key, ReconciliationKey):
            key = ReconciliationKey.from_storage_key(str(key))
        if not isinstance(value, ReconciliationInput):
            value = ReconciliationInput.from_record(value)
        normalized[key] = value
    return normalized


def inputs_to_storage(inputs: Mapping[ReconciliationKey, ReconciliationInput]) -> dict[str, dict]:
    return {key.storage_key(): value.to_record() for key, value in inputs.items()}


def set_reconciliation_input(
    inputs: Optional[Mapping[InputKey, InputValue]],
    key: ReconciliationKey,
    field: str,
    value: Any,
) -> dict[ReconciliationKey, ReconciliationInput]:
    """
    Return a copy of `inputs` with one field of one item updated.

    The input is created on first edit. Existing inputs are never removed.
    """
    attr = {"startQty": "start_qty", "actualQty": "actual_qty", "note": "note"}.get(field, field)
    if attr not in ("start_qty", "actual_qty", "note"):
        raise ValueError(f"Unknown reconciliation field: {field}")

    updated = normalize_inputs(inputs)
    current = updated.get(key, ReconciliationInput())
    if attr == "note":
        new_value = "" if value is None else str(value)
    else:
        new_value = to_decimal(value)
    updated[key] = replace(current, **{attr: new_value})
    return updated


def _passes(value: str, wanted: Optional[str]) -> bool:
    if wanted is None or wanted == "all":
        return True
    return value == wanted


def reconcile(
    inventory_items: Optional[Sequence[Record]],
    usage: Optional[Mapping[str, Decimal]],
    reconciliation_inputs: Optional[Mapping[InputKey, InputValue]] = None,
    brand: Optional[str] = "all",
    outlet: Optional[str] = "all",
) -> list[VarianceRow]:
    """
    Build one variance row per inventory item passing the brand/outlet filter.

    Rows keep input order. Items without a stored input reconcile with
    start/actual quantities of 0.
    """
    usage = usage or {}
    inputs = normalize_inputs(reconciliation_inputs)

    rows = []
    for item in inventory_items or []:
        if not isinstance(item, Mapping):
            continue
        key = ReconciliationKey.for_item(item)
        item_code = text_field(item, "itemCode")
        item_brand = text_field(item, "brand")
        outlet_name = item_outlet(item)
        if not _passes(item_brand, brand) or not _passes(outlet_name, outlet):
            continue

        counts = inputs.get(key, ReconciliationInput())
        unit_cost = item_unit_cost(item)
        theoretical_usage_qty = to_decimal(usage.get(item_code)) if item_code else ZERO
        theoretical_qty = counts.start_qty - theoretical_usage_qty
        variance_qty = counts.actual_qty - theoretical_qty
        variance_pct = None
        if theoretical_qty != 0:
            variance_pct = variance_qty / theoretical_qty * 100

        rows.append(VarianceRow(
            key=key,
            item_code=item_code,
            item_name=text_field(item, "itemName"),
            brand=item_brand,
            outlet=outlet_name,
            unit=text_field(item, "unit"),
            unit_cost=unit_cost,
            start_qty=counts.start_qty,
            theoretical_usage_qty=theoretical_usage_qty,
            theoretical_qty=theoretical_qty,
            actual_qty=counts.actual_qty,
            variance_qty=variance_qty,
            variance_cost=variance_qty * unit_cost,
            variance_pct=variance_pct,
            note=counts.note,
        ))
    return rows


def is_significant(row: VarianceRow, cost_threshold: Optional[Decimal], pct_threshold: Optional[Decimal]) -> bool:
    """Either threshold reached. A None threshold disables that check."""
    if cost_threshold is not None and abs(row.variance_cost) >= cost_threshold:
        return True
    if pct_threshold is not None and row.variance_pct is not None:
        return abs(row.variance_pct) >= pct_threshold
    return False


def significant_variances(
    rows: Sequence[VarianceRow],
    thresholds: Optional[ReconciliationThresholds] = None,
) -> list[VarianceRow]:
    thresholds = thresholds or ReconciliationThresholds()
    return [row for row in rows if is_significant(row, thresholds.cost, thresholds.pct)]


def summarize_variance(rows: Sequence[VarianceRow]) -> VarianceSummary:
    total_cost = sum((r.variance_cost for r in rows), ZERO)
    total_theoretical = sum((r.theoretical_qty for r in rows), ZERO)
    total_pct = None
    if total_theoretical != 0:
        total_variance_qty = sum((r.variance_qty for r in rows), ZERO)
        total_pct = total_variance_qty / total_theoretical * 100
    return VarianceSummary(
        total_variance_cost=total_cost,
        total_theoretical_qty=total_theoretical,
        total_variance_pct=total_pct,
    )

"""
KPI Aggregator.

Reduces raw sales, purchases, waste, overhead and labor records into the
headline financial metrics shown on the dashboard and fed to alerting.

EBITDA Formula:
EBITDA = sales - purchases - operating_opex - labor

Where operating_opex is overhead minus the depreciation/amortization and
interest/tax categories, which sit below EBITDA:
net_profit = EBITDA - depreciation_amortization - interest_tax
"""
import re
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from restops.core.records import ZERO, DateRange, month_key, number_field, text_field


Record = Mapping[str, Any]

DEPRECIATION_PATTERN = re.compile(r"deprec|amort", re.IGNORECASE)
INTEREST_TAX_PATTERN = re.compile(r"interest|tax", re.IGNORECASE)

DEFAULT_UNASSIGNED_OUTLET = "All / Unassigned"


@dataclass
class KpiSnapshot:
    """Aggregate financial metrics for one slice of records."""
    total_sales: Decimal
    total_purchases: Decimal  # COGS approximation
    total_waste: Decimal
    total_opex: Decimal
    total_labor: Decimal
    depreciation_amortization: Decimal
    interest_tax: Decimal
    operating_opex: Decimal
    ebitda: Decimal
    net_profit: Decimal
    waste_percent: Decimal  # waste / purchases * 100
    labor_percent_of_sales: Decimal
    cogs_percent_of_sales: Decimal
    ebitda_margin: Decimal  # ebitda / sales * 100


def sales_amount(row: Record) -> Decimal:
    return number_field(row, "netSales", "sales")


def purchase_amount(row: Record) -> Decimal:
    return number_field(row, "totalCost", "amount")


def waste_amount(row: Record) -> Decimal:
    return number_field(row, "costValue", "totalCost")


def labor_amount(row: Record) -> Decimal:
    return number_field(row, "laborCost", "amount")


def overhead_amount(row: Record) -> Decimal:
    return number_field(row, "amount")


def _total(rows: Optional[Iterable[Record]], amount) -> Decimal:
    return sum((amount(row) for row in rows or []), ZERO)


def _percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Percentage with a zero denominator defined as 0."""
    if denominator == 0:
        return ZERO
    return numerator / denominator * 100


def _below_ebitda_totals(rows: Iterable[Record]) -> tuple[Decimal, Decimal]:
    """
    Split overhead into (depreciation/amortization, interest/tax).

    Each row lands in at most one bucket; depreciation/amortization wins
    when a category matches both.
    """
    depreciation_amortization = ZERO
    interest_tax = ZERO
    for row in rows:
        category = text_field(row, "category")
        if not category:
            continue
        if DEPRECIATION_PATTERN.search(category):
            depreciation_amortization += overhead_amount(row)
        elif INTEREST_TAX_PATTERN.search(category):
            interest_tax += overhead_amount(row)
    return depreciation_amortization, interest_tax


def compute_kpis(
    sales: Optional[Sequence[Record]] = None,
    purchases: Optional[Sequence[Record]] = None,
    waste: Optional[Sequence[Record]] = None,
    overhead: Optional[Sequence[Record]] = None,
    labor: Optional[Sequence[Record]] = None,
) -> KpiSnapshot:
    """
    Compute the KPI snapshot for the given record slices.

    Never raises on malformed rows: unreadable amounts count as 0. Callers
    drill down by passing filtered slices (see filter_records).
    """
    overhead = list(overhead or [])

    total_sales = _total(sales, sales_amount)
    total_purchases = _total(purchases, purchase_amount)
    total_waste = _total(waste, waste_amount)
    total_opex = _total(overhead, overhead_amount)
    total_labor = _total(labor, labor_amount)

    depreciation_amortization, interest_tax = _below_ebitda_totals(overhead)
    operating_opex = total_opex - depreciation_amortization - interest_tax

    ebitda = total_sales - total_purchases - operating_opex - total_labor
    net_profit = ebitda - depreciation_amortization - interest_tax

    return KpiSnapshot(
        total_sales=total_sales,
        total_purchases=total_purchases,
        total_waste=total_waste,
        total_opex=total_opex,
        total_labor=total_labor,
        depreciation_amortization=depreciation_amortization,
        interest_tax=interest_tax,
        operating_opex=operating_opex,
        ebitda=ebitda,
        net_profit=net_profit,
        waste_percent=_percent(total_waste, total_purchases),
        labor_percent_of_sales=_percent(total_labor, total_sales),
        cogs_percent_of_sales=_percent(total_purchases, total_sales),
        ebitda_margin=_percent(ebitda, total_sales),
    )


def _matches(row_value: str, wanted: Optional[str]) -> bool:
    # Unset filter, "all", or a row that applies to every brand/outlet
    if not wanted or wanted == "all":
        return True
    return not row_value or row_value == wanted


def filter_records(
    records: Optional[Iterable[Record]],
    brand: Optional[str] = None,
    outlet: Optional[str] = None,
    date_range: Optional[DateRange] = None,
) -> list[Record]:
    """
    Slice records for drill-down views.

    A row passes when each filter is unset or matches. Rows with an empty
    brand/outlet apply to all and always pass; undated rows are kept.
    """
    date_range = date_range or DateRange()
    result = []
    for row in records or []:
        if not isinstance(row, Mapping):
            continue
        if not _matches(text_field(row, "brand"), brand):
            continue
        if not _matches(text_field(row, "outlet"), outlet):
            continue
        if not date_range.admits(row.get("date")):
            continue
        result.append(row)
    return result


def _group_by_outlet_month(
    rows: Optional[Iterable[Record]],
    unassigned_label: str,
) -> dict[tuple[str, str], list[Record]]:
    groups: dict[tuple[str, str], list[Record]] = defaultdict(list)
    for row in rows or []:
        if not isinstance(row, Mapping):
            continue
        mk = month_key(row.get("date"))
        if mk is None:
            continue
        outlet = text_field(row, "outlet") or unassigned_label
        groups[(outlet, mk)].append(row)
    return groups


def compute_monthly_ebitda_by_outlet(
    sales: Optional[Sequence[Record]] = None,
    purchases: Optional[Sequence[Record]] = None,
    overhead: Optional[Sequence[Record]] = None,
    labor: Optional[Sequence[Record]] = None,
    unassigned_label: str = DEFAULT_UNASSIGNED_OUTLET,
) -> dict[str, dict[str, Decimal]]:
    """
    Build per-outlet monthly EBITDA history for streak alerts.

    Returns {outlet: {"YYYY-MM": ebitda}}. Uses the same EBITDA definition as
    compute_kpis, applied to each outlet/month bucket. Undated rows are
    skipped since they can't be placed in a month.
    """
    buckets = {
        "sales": _group_by_outlet_month(sales, unassigned_label),
        "purchases": _group_by_outlet_month(purchases, unassigned_label),
        "overhead": _group_by_outlet_month(overhead, unassigned_label),
        "labor": _group_by_outlet_month(labor, unassigned_label),
    }
    keys = set()
    for grouped in buckets.values():
        keys.update(grouped.keys())

    history: dict[str, dict[str, Decimal]] = defaultdict(dict)
    for outlet, mk in sorted(keys):
        snapshot = compute_kpis(
            sales=buckets["sales"].get((outlet, mk), []),
            purchases=buckets["purchases"].get((outlet, mk), []),
            overhead=buckets["overhead"].get((outlet, mk), []),
            labor=buckets["labor"].get((outlet, mk), []),
        )
        history[outlet][mk] = snapshot.ebitda
    return dict(history)


def compute_ebitda_by_outlet(
    sales: Optional[Sequence[Record]] = None,
    purchases: Optional[Sequence[Record]] = None,
    waste: Optional[Sequence[Record]] = None,
    overhead: Optional[Sequence[Record]] = None,
    labor: Optional[Sequence[Record]] = None,
    unassigned_label: str = DEFAULT_UNASSIGNED_OUTLET,
) -> list[tuple[str, KpiSnapshot]]:
    """Per-outlet KPI snapshots, sorted by outlet name."""
    collections = {
        "sales": sales,
        "purchases": purchases,
        "waste": waste,
        "overhead": overhead,
        "labor": labor,
    }
    by_outlet: dict[str, dict[str, list[Record]]] = defaultdict(lambda: defaultdict(list))
    for name, rows in collections.items():
        for row in rows or []:
            if not isinstance(row, Mapping):
                continue
            outlet = text_field(row, "outlet") or unassigned_label
            by_outlet[outlet][name].append(row)

    return [
        (outlet, compute_kpis(**parts))
        for outlet, parts in sorted(by_outlet.items())
    ]

"""
Theoretical Usage Resolver.

Joins recipes, menu unit sales and manual waste into the expected
consumption per inventory code.

Mathematical Model:
usage_j = Σ_i (units_sold_i × qty_per_portion_ij) + Σ_w waste_qty_wj

Where:
- units_sold_i = units of menu item i sold in the period
- qty_per_portion_ij = quantity of inventory item j in one portion of i
- waste_qty_wj = manually logged waste of item j inside the date range
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from restops.core.records import ZERO, DateRange, number_field, text_field

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


@dataclass
class UsageResolution:
    """Theoretical usage plus what the joins had to drop."""
    usage: dict[str, Decimal]
    unmatched_waste: list[Record] = field(default_factory=list)
    ambiguous_waste: list[Record] = field(default_factory=list)
    recipes_without_sales: list[str] = field(default_factory=list)


def units_sold_by_name(menu_sales: Optional[Sequence[Record]]) -> dict[str, Decimal]:
    """Total units sold per menu-item name. Duplicate names accumulate."""
    units: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for fact in menu_sales or []:
        name = text_field(fact, "itemName", "name")
        if not name:
            continue
        sold = number_field(fact, "unitsSold")
        if sold <= 0:
            continue
        units[name] += sold
    return dict(units)


def recipe_menu_name(recipe: Record) -> str:
    return text_field(recipe, "menuItemName", "itemName", "recipeName", "name")


def recipe_lines(recipe: Record) -> list[Record]:
    for key in ("lines", "ingredients"):
        lines = recipe.get(key)
        if isinstance(lines, (list, tuple)):
            return [line for line in lines if isinstance(line, Mapping)]
    return []


def line_code(line: Record) -> str:
    return text_field(line, "inventoryCode", "itemCode", "code", "itemCodeRef")


def line_quantity(line: Record) -> Decimal:
    qty = number_field(line, "qtyPerPortion", "quantity", "qty", "portionQty")
    return qty if qty > 0 else ZERO


def waste_quantity(row: Record) -> Decimal:
    return number_field(row, "qty", "quantity", "units", "qtyLost")


def _codes_by_item_name(inventory_items: Optional[Sequence[Record]]) -> dict[str, set[str]]:
    codes: dict[str, set[str]] = defaultdict(set)
    for item in inventory_items or []:
        if not isinstance(item, Mapping):
            continue
        name = item.get("itemName")
        code = text_field(item, "itemCode")
        if name and code:
            codes[str(name)].add(code)
    return codes


class TheoreticalUsageResolver:
    """
    Computes expected ingredient consumption per inventory code.

    Recipes join to menu sales by exact menu-item name. Waste rows join to
    inventory by code, or, when a row has no code, by exact item name if and
    only if the name identifies a single inventory code. Rows that can't be
    joined are dropped from the usage (they are reported on the detailed
    result and logged at DEBUG, never raised).
    """

    def __init__(self, inventory_items: Optional[Sequence[Record]] = None):
        self.codes_by_name = _codes_by_item_name(inventory_items)

    def resolve(
        self,
        recipes: Optional[Sequence[Record]],
        menu_sales: Optional[Sequence[Record]],
        waste_records: Optional[Sequence[Record]],
        date_range: Optional[DateRange] = None,
    ) -> UsageResolution:
        """Run both joins and return the usage map with diagnostics."""
        date_range = date_range or DateRange()
        usage: dict[str, Decimal] = defaultdict(lambda: ZERO)
        resolution = UsageResolution(usage={})

        # 1) Recipe consumption: qty_per_portion * units_sold
        units_by_name = units_sold_by_name(menu_sales)
        for recipe in recipes or []:
            if not isinstance(recipe, Mapping):
                continue
            name = recipe_menu_name(recipe)
            if not name:
                continue
            portions_sold = units_by_name.get(name, ZERO)
            if portions_sold <= 0:
                resolution.recipes_without_sales.append(name)
                continue

            for line in recipe_lines(recipe):
                code = line_code(line)
                if not code:
                    continue
                total_usage = line_quantity(line) * portions_sold
                if total_usage:
                    usage[code] += total_usage

        # 2) Manual waste inside the window
        for row in waste_records or []:
            if not isinstance(row, Mapping):
                continue
            if not date_range.admits(row.get("date")):
                continue
            qty = waste_quantity(row)
            if not qty:
                continue
            code = text_field(row, "inventoryCode", "itemCode")
            if not code:
                code = self._match_by_name(row, resolution)
            if code:
                usage[code] += qty

        resolution.usage = {code: qty for code, qty in usage.items() if qty != 0}
        return resolution

    def _match_by_name(self, row: Record, resolution: UsageResolution) -> Optional[str]:
        name = text_field(row, "item", "itemName")
        candidates = self.codes_by_name.get(name, set()) if name else set()
        if len(candidates) == 1:
            return next(iter(candidates))

        if candidates:
            resolution.ambiguous_waste.append(row)
            logger.debug(f"Dropping waste row for '{name}': {len(candidates)} inventory codes match")
        else:
            resolution.unmatched_waste.append(row)
            logger.debug(f"Dropping waste row with no inventory match: {name or '<unnamed>'}")
        return None


def resolve_usage_details(
    recipes: Optional[Sequence[Record]],
    menu_sales: Optional[Sequence[Record]],
    waste_records: Optional[Sequence[Record]],
    inventory_items: Optional[Sequence[Record]],
    date_range: Optional[DateRange] = None,
) -> UsageResolution:
    resolver = TheoreticalUsageResolver(inventory_items)
    return resolver.resolve(recipes, menu_sales, waste_records, date_range)


def resolve_usage(
    recipes: Optional[Sequence[Record]],
    menu_sales: Optional[Sequence[Record]],
    waste_records: Optional[Sequence[Record]],
    inventory_items: Optional[Sequence[Record]],
    date_range: Optional[DateRange] = None,
) -> dict[str, Decimal]:
    """
    Expected consumption per inventory code.

    Only codes that received a non-zero contribution appear in the result.
    """
    return resolve_usage_details(
        recipes, menu_sales, waste_records, inventory_items, date_range
    ).usage

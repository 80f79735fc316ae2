"""
Tests for the theoretical usage resolver.
"""
from decimal import Decimal

import pytest

from restops.core.records import DateRange
from restops.services.usage_resolver import (
    TheoreticalUsageResolver,
    resolve_usage,
    resolve_usage_details,
    units_sold_by_name,
)


@pytest.fixture
def inventory():
    return [
        {"itemCode": "BEEF", "itemName": "Beef patty", "outlet": "Abdoun"},
        {"itemCode": "BUN", "itemName": "Brioche bun", "outlet": "Abdoun"},
        {"itemCode": "OIL-1", "itemName": "Oil", "outlet": "Abdoun"},
        {"itemCode": "OIL-2", "itemName": "Oil", "outlet": "Sweifieh"},
    ]


@pytest.fixture
def burger_recipe():
    return {
        "menuItemName": "Classic Burger",
        "lines": [
            {"inventoryCode": "BEEF", "qtyPerPortion": 1},
            {"inventoryCode": "BUN", "qtyPerPortion": "1"},
        ],
    }


class TestRecipeUsage:
    """Recipe lines times units sold."""

    def test_recipe_consumption(self, inventory, burger_recipe):
        usage = resolve_usage(
            [burger_recipe],
            [{"itemName": "Classic Burger", "unitsSold": 120}],
            [],
            inventory,
        )

        assert usage == {"BEEF": Decimal("120"), "BUN": Decimal("120")}

    def test_duplicate_menu_names_accumulate(self):
        units = units_sold_by_name([
            {"itemName": "Fries", "unitsSold": 10},
            {"name": "Fries", "unitsSold": "5"},
            {"itemName": "Fries", "unitsSold": -3},
            {"unitsSold": 7},
        ])

        assert units == {"Fries": Decimal("15")}

    def test_recipe_without_sales_contributes_nothing(self, inventory, burger_recipe):
        resolution = resolve_usage_details([burger_recipe], [], [], inventory)

        assert resolution.usage == {}
        assert resolution.recipes_without_sales == ["Classic Burger"]

    def test_ingredients_alias_and_blank_codes(self):
        recipe = {
            "name": "Salad",
            "ingredients": [
                {"itemCode": "LET", "quantity": "0.2"},
                {"itemCode": "", "quantity": 5},
                {"itemCode": "TOM", "quantity": -1},
            ],
        }
        usage = resolve_usage([recipe], [{"itemName": "Salad", "unitsSold": 10}], [], [])

        assert usage == {"LET": Decimal("2.0")}

    def test_item_code_ref_alias(self):
        recipe = {"menuItemName": "Fries", "lines": [{"itemCodeRef": "POT", "qtyPerPortion": "0.25"}]}

        usage = resolve_usage([recipe], [{"itemName": "Fries", "unitsSold": 8}], [], [])

        assert usage == {"POT": Decimal("2.00")}


class TestWasteUsage:
    """Manual waste joined to inventory."""

    def test_waste_by_code(self, inventory):
        usage = resolve_usage([], [], [{"inventoryCode": "BUN", "qty": 4}], inventory)

        assert usage == {"BUN": Decimal("4")}

    def test_waste_by_unique_name(self, inventory):
        usage = resolve_usage([], [], [{"item": "Beef patty", "qty": 3}], inventory)

        assert usage == {"BEEF": Decimal("3")}

    def test_ambiguous_and_unknown_names_are_dropped(self, inventory):
        waste = [
            {"item": "Oil", "qty": 2},
            {"item": "Saffron", "qty": 1},
        ]
        resolution = resolve_usage_details([], [], waste, inventory)

        assert resolution.usage == {}
        assert resolution.ambiguous_waste == [waste[0]]
        assert resolution.unmatched_waste == [waste[1]]

    def test_waste_outside_window_is_ignored(self, inventory):
        waste = [
            {"inventoryCode": "BUN", "qty": 4, "date": "2024-01-15"},
            {"inventoryCode": "BUN", "qty": 6, "date": "2024-02-15"},
            {"inventoryCode": "BUN", "qty": 1},
        ]
        window = DateRange.from_values("2024-02-01", "2024-02-29")

        usage = resolve_usage([], [], waste, inventory, window)

        assert usage == {"BUN": Decimal("7")}

    def test_recipe_and_waste_add_up(self, inventory, burger_recipe):
        resolver = TheoreticalUsageResolver(inventory)

        resolution = resolver.resolve(
            [burger_recipe],
            [{"itemName": "Classic Burger", "unitsSold": 10}],
            [{"item": "Beef patty", "qty": 2}],
        )

        assert resolution.usage["BEEF"] == Decimal("12")
        assert resolution.usage["BUN"] == Decimal("10")

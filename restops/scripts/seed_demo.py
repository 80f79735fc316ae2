"""
Seed a small demo restaurant group into the record store.

Two outlets of one brand, three months of sales/costs, a burger recipe and a
few inventory counts, enough to light up every dashboard and alert.

Usage:
    python -m restops.scripts.seed_demo
"""
from datetime import date

from restops.core.config import get_settings
from restops.services import record_store as collections
from restops.services.record_store import RecordStore

BRAND = "Casual Burger"
OUTLETS = ["Abdoun", "Sweifieh"]
MONTHS = ["2024-01", "2024-02", "2024-03"]


def demo_collections() -> dict[str, list]:
    """Build the demo records. Sweifieh loses money every month."""
    sales, purchases, labor, overhead = [], [], [], []

    for month in MONTHS:
        day = f"{month}-15"
        sales.append({"date": day, "brand": BRAND, "outlet": "Abdoun", "channel": "Dine-in", "netSales": 12000})
        sales.append({"date": day, "brand": BRAND, "outlet": "Sweifieh", "channel": "Delivery", "netSales": 6000})

        purchases.append({"date": day, "brand": BRAND, "outlet": "Abdoun", "supplier": "Fresh Co", "totalCost": 4200})
        purchases.append({"date": day, "brand": BRAND, "outlet": "Sweifieh", "supplier": "Fresh Co", "totalCost": 2900})

        labor.append({"date": day, "brand": BRAND, "outlet": "Abdoun", "employeeName": "Kitchen team", "laborCost": 3000})
        labor.append({"date": day, "brand": BRAND, "outlet": "Sweifieh", "employeeName": "Kitchen team", "laborCost": 2400})

        overhead.append({"date": day, "brand": BRAND, "outlet": "Abdoun", "category": "Rent", "amount": 1800})
        overhead.append({"date": day, "brand": BRAND, "outlet": "Sweifieh", "category": "Rent", "amount": 1500})
        overhead.append({"date": day, "brand": BRAND, "outlet": "Abdoun", "category": "Depreciation", "amount": 400})

    inventory = [
        {"itemCode": "BEEF", "itemName": "Beef patty", "brand": BRAND, "outlet": "Abdoun", "unit": "pc", "unitCost": 1.2},
        {"itemCode": "BUN", "itemName": "Brioche bun", "brand": BRAND, "outlet": "Abdoun", "unit": "pc", "unitCost": 0.25},
        {"itemCode": "FLR", "itemName": "Flour", "brand": BRAND, "outlet": "Abdoun", "unit": "kg", "unitCost": 2},
    ]

    recipes = [
        {
            "id": "rcp-classic",
            "menuItemName": "Classic Burger",
            "lines": [
                {"inventoryCode": "BEEF", "qtyPerPortion": 1, "unit": "pc"},
                {"inventoryCode": "BUN", "qtyPerPortion": 1, "unit": "pc"},
            ],
        },
    ]

    menu_sales = [
        {"itemName": "Classic Burger", "unitsSold": 400, "brand": BRAND, "outlet": "Abdoun"},
    ]

    waste = [
        {"date": "2024-03-10", "brand": BRAND, "outlet": "Abdoun", "item": "Beef patty", "qty": 12, "costValue": 14.4},
        {"date": "2024-03-11", "brand": BRAND, "outlet": "Abdoun", "inventoryCode": "FLR", "qty": 5, "costValue": 10},
    ]

    return {
        collections.SALES: sales,
        collections.PURCHASES: purchases,
        collections.LABOR: labor,
        collections.OVERHEAD: overhead,
        collections.INVENTORY: inventory,
        collections.RECIPES: recipes,
        collections.MENU_SALES: menu_sales,
        collections.WASTE: waste,
    }


def demo_reconciliation_inputs() -> dict[str, dict]:
    return {
        f"BEEF__{BRAND}__Abdoun": {"startQty": 500, "actualQty": 70, "note": "Counted " + date(2024, 3, 31).isoformat()},
        f"BUN__{BRAND}__Abdoun": {"startQty": 450, "actualQty": 50, "note": ""},
        f"FLR__{BRAND}__Abdoun": {"startQty": 100, "actualQty": 95, "note": ""},
    }


def seed(store: RecordStore) -> None:
    for name, records in demo_collections().items():
        print(f"Seeding {name} ({len(records)} records)...")
        store.write(name, records)
    store.write(collections.RECONCILIATION_INPUTS, demo_reconciliation_inputs())


if __name__ == "__main__":
    from restops.db.session import init_db, session_scope
    from restops.services.record_store import SqlRecordStore

    settings = get_settings()
    print(f"Seeding demo data into {settings.DATABASE_URL}")
    init_db()
    with session_scope() as db:
        seed(SqlRecordStore(db))
    print("Done.")

"""
Record Store Adapter.

Exposes the named operational collections as whole ordered sequences. The
engine only ever reads or replaces a collection in full; row-level editing
belongs to the CRUD screens that own the data.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Union

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from restops.models.record_collection import RecordCollection

logger = logging.getLogger(__name__)


SALES = "sales"
PURCHASES = "purchases"
WASTE = "waste"
INVENTORY = "inventory"
RECIPES = "recipes"
LABOR = "labor"
OVERHEAD = "overhead"
MENU_SALES = "menu_sales"
RECONCILIATION_INPUTS = "reconciliation_inputs"
ALERT_RULES = "alert_rules"
ACTION_ITEMS = "action_items"

ROW_COLLECTIONS = (
    SALES, PURCHASES, WASTE, INVENTORY, RECIPES, LABOR, OVERHEAD, MENU_SALES,
    ALERT_RULES, ACTION_ITEMS,
)
# Stored as a single object keyed by itemCode__brand__outlet
KEYED_COLLECTIONS = (RECONCILIATION_INPUTS,)
COLLECTIONS = ROW_COLLECTIONS + KEYED_COLLECTIONS

Payload = Union[list[dict], dict[str, Any]]


def empty_payload(name: str) -> Payload:
    return {} if name in KEYED_COLLECTIONS else []


def check_collection(name: str) -> None:
    if name not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {name}")


class RecordStore(ABC):
    """Abstract read/write access to whole named collections."""

    @abstractmethod
    def read(self, name: str) -> Payload:
        """Return a copy of the collection (empty if never written)."""
        pass

    @abstractmethod
    def write(self, name: str, records: Payload) -> None:
        """Replace the collection."""
        pass

    def append(self, name: str, records: Iterable[dict]) -> list[dict]:
        """Append rows to a row collection and return the new contents."""
        if name in KEYED_COLLECTIONS:
            raise TypeError(f"Cannot append rows to keyed collection: {name}")
        updated = list(self.read(name)) + list(records)
        self.write(name, updated)
        return updated


class InMemoryRecordStore(RecordStore):
    """Dict-backed store for tests, scripts and previews."""

    def __init__(self, initial: dict[str, Payload] = None):
        self._data: dict[str, Payload] = {}
        for name, records in (initial or {}).items():
            self.write(name, records)

    def read(self, name: str) -> Payload:
        check_collection(name)
        if name not in self._data:
            return empty_payload(name)
        return copy.deepcopy(self._data[name])

    def write(self, name: str, records: Payload) -> None:
        check_collection(name)
        self._data[name] = copy.deepcopy(records)


class SqlRecordStore(RecordStore):
    """Store backed by the record_collections table."""

    def __init__(self, db: Session):
        self.db = db

    def read(self, name: str) -> Payload:
        check_collection(name)
        row = self.db.get(RecordCollection, name)
        if row is None or row.records is None:
            return empty_payload(name)
        return copy.deepcopy(row.records)

    def write(self, name: str, records: Payload) -> None:
        check_collection(name)
        row = self.db.get(RecordCollection, name)
        if row is None:
            row = RecordCollection(name=name, records=records)
            self.db.add(row)
        else:
            row.records = records
            flag_modified(row, "records")
        self.db.commit()
        logger.debug(f"Wrote collection '{name}' ({len(records)} entries)")

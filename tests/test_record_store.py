"""
Tests for the in-memory and SQL record stores.
"""
import pytest

from restops.services import record_store as collections


class TestInMemoryRecordStore:
    """Dict-backed store."""

    def test_unwritten_collections_are_empty(self, store):
        assert store.read(collections.SALES) == []
        assert store.read(collections.RECONCILIATION_INPUTS) == {}

    def test_write_replaces(self, store):
        store.write(collections.SALES, [{"netSales": 1}])
        store.write(collections.SALES, [{"netSales": 2}])

        assert store.read(collections.SALES) == [{"netSales": 2}]

    def test_reads_are_copies(self, store):
        store.write(collections.SALES, [{"netSales": 1}])

        store.read(collections.SALES)[0]["netSales"] = 99

        assert store.read(collections.SALES) == [{"netSales": 1}]

    def test_append(self, store):
        store.write(collections.ACTION_ITEMS, [{"id": "a"}])

        store.append(collections.ACTION_ITEMS, [{"id": "b"}])

        assert [row["id"] for row in store.read(collections.ACTION_ITEMS)] == ["a", "b"]

    def test_append_to_keyed_collection(self, store):
        with pytest.raises(TypeError):
            store.append(collections.RECONCILIATION_INPUTS, [{}])

    def test_unknown_collection(self, store):
        with pytest.raises(KeyError):
            store.read("suppliers")


class TestSqlRecordStore:
    """Table-backed store."""

    def test_write_then_read(self, sql_store):
        sql_store.write(collections.INVENTORY, [{"itemCode": "FLR"}])

        assert sql_store.read(collections.INVENTORY) == [{"itemCode": "FLR"}]

    def test_overwrite_is_persisted(self, sql_store, db):
        sql_store.write(collections.RECONCILIATION_INPUTS, {"FLR__B__O": {"startQty": "1"}})
        sql_store.write(collections.RECONCILIATION_INPUTS, {"FLR__B__O": {"startQty": "2"}})
        db.expire_all()

        assert sql_store.read(collections.RECONCILIATION_INPUTS) == {"FLR__B__O": {"startQty": "2"}}

    def test_append(self, sql_store):
        sql_store.append(collections.ACTION_ITEMS, [{"id": "a"}])
        sql_store.append(collections.ACTION_ITEMS, [{"id": "b"}])

        assert len(sql_store.read(collections.ACTION_ITEMS)) == 2

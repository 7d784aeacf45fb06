"""
Entity Store tests.

Verifies:
- Values round-trip as independent copies
- Versions increment on every write; compare-and-set rejects stale writes
- Prefix scans treat the prefix literally and return keys in order
- Writes with commit=False belong to the caller's transaction
"""

import pytest

from stockpile.extensions import db
from stockpile.services import kv_store
from stockpile.services.kv_store import StaleEntryError


class TestGetSet:

    def test_missing_key_is_none(self, db_session):
        assert kv_store.get_value("product:nope") is None

    def test_set_then_get(self, db_session):
        kv_store.set_value("product:p1", {"id": "p1", "name": "Laptop"})
        assert kv_store.get_value("product:p1") == {"id": "p1", "name": "Laptop"}

    def test_returned_value_is_a_copy(self, db_session):
        kv_store.set_value("product:p1", {"id": "p1", "tags": ["a"]})
        value = kv_store.get_value("product:p1")
        value["tags"].append("b")
        assert kv_store.get_value("product:p1")["tags"] == ["a"]

    def test_version_increments_on_overwrite(self, db_session):
        first = kv_store.set_value("category:c1", {"name": "A"})
        assert first.version == 1
        second = kv_store.set_value("category:c1", {"name": "B"})
        assert second.version == 2
        assert kv_store.get_value("category:c1") == {"name": "B"}


class TestCompareAndSet:

    def test_create_requires_absent_key(self, db_session):
        kv_store.compare_and_set("sale:s1", {"n": 1}, None)
        with pytest.raises(StaleEntryError) as exc:
            kv_store.compare_and_set("sale:s1", {"n": 2}, None)
        assert exc.value.actual == 1

    def test_matching_version_writes(self, db_session):
        kv_store.set_value("sale:s1", {"n": 1})
        entry = kv_store.compare_and_set("sale:s1", {"n": 2}, 1)
        assert entry.version == 2
        assert kv_store.get_value("sale:s1") == {"n": 2}

    def test_stale_version_is_rejected_and_value_kept(self, db_session):
        kv_store.set_value("sale:s1", {"n": 1})
        kv_store.set_value("sale:s1", {"n": 2})
        with pytest.raises(StaleEntryError):
            kv_store.compare_and_set("sale:s1", {"n": 3}, 1)
        assert kv_store.get_value("sale:s1") == {"n": 2}


class TestPrefixOperations:

    def test_scan_is_ordered_and_scoped(self, db_session):
        kv_store.mset({
            "product:b": {"id": "b"},
            "product:a": {"id": "a"},
            "productx:c": {"id": "c"},
            "batch:a": {"id": "z"},
        })
        assert [v["id"] for v in kv_store.get_by_prefix("product:")] == ["a", "b"]

    def test_wildcard_characters_are_literal(self, db_session):
        kv_store.set_value("a_b:1", {"id": "literal"})
        kv_store.set_value("axb:1", {"id": "other"})
        assert [v["id"] for v in kv_store.get_by_prefix("a_b:")] == ["literal"]

    def test_count_and_delete_by_prefix(self, db_session):
        kv_store.mset({"po:1": {}, "po:2": {}, "sale:1": {}})
        assert kv_store.count_by_prefix("po:") == 2
        assert kv_store.delete_by_prefix("po:") == 2
        assert kv_store.count_by_prefix("po:") == 0
        assert kv_store.get_value("sale:1") == {}

    def test_mget_keeps_order_and_missing_keys(self, db_session):
        kv_store.mset({"customer:1": {"n": 1}, "customer:2": {"n": 2}})
        assert kv_store.mget(["customer:2", "customer:9", "customer:1"]) == [{"n": 2}, None, {"n": 1}]

    def test_delete_value_reports_existence(self, db_session):
        kv_store.set_value("provider:1", {})
        assert kv_store.delete_value("provider:1") is True
        assert kv_store.delete_value("provider:1") is False

    def test_mdel(self, db_session):
        kv_store.mset({"payment:1": {}, "payment:2": {}})
        assert kv_store.mdel(["payment:1", "payment:2", "payment:3"]) == 2


class TestTransactions:

    def test_uncommitted_writes_roll_back(self, db_session):
        kv_store.set_value("po:keep", {"n": 1})
        kv_store.set_value("po:tmp", {"n": 1}, commit=False)
        kv_store.set_value("po:keep", {"n": 2}, commit=False)
        db.session.rollback()

        assert kv_store.get_value("po:tmp") is None
        assert kv_store.get_value("po:keep") == {"n": 1}

    def test_reinsert_after_prefix_delete_in_one_transaction(self, db_session):
        kv_store.set_value("category:c1", {"name": "old"})
        kv_store.delete_by_prefix("category:", commit=False)
        kv_store.mset({"category:c1": {"name": "new"}}, commit=False)
        db.session.commit()

        entry = kv_store.get_entry("category:c1")
        assert entry.value == {"name": "new"}
        assert entry.version == 1

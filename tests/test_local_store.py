"""Tests for the SQLite-backed local store."""

import json
import sqlite3

import pytest

from packlog.protocols import StoreReadError, StoreWriteError
from packlog.storage import PENDING_DELETES_KEY, RECORDS_KEY, LocalStore


def _raw_put(store: LocalStore, key: str, value: str) -> None:
    conn = sqlite3.connect(store.db_path)
    conn.execute(
        "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, 'now')",
        (key, value),
    )
    conn.commit()
    conn.close()


class TestRecords:
    def test_empty_store_lists_nothing(self, store):
        assert store.list() == []
        assert store.last_read_error is None

    def test_replace_all_round_trip_keeps_order(self, store, make_record):
        records = [make_record("b", 200), make_record("a", 100)]
        store.replace_all(records)
        assert store.list() == records

    def test_data_survives_reopen(self, store, make_record):
        store.replace_all([make_record("a")])
        reopened = LocalStore(store.db_path)
        assert [r.id for r in reopened.list()] == ["a"]

    def test_upsert_one_prepends_new(self, store, make_record):
        store.replace_all([make_record("a")])
        store.upsert_one(make_record("b"))
        assert [r.id for r in store.list()] == ["b", "a"]

    def test_upsert_one_replaces_in_place(self, store, make_record):
        store.replace_all([make_record("a"), make_record("b")])
        store.upsert_one(make_record("b", 500, customer_name="New"))
        records = store.list()
        assert [r.id for r in records] == ["a", "b"]
        assert records[1].customer_name == "New"

    def test_get(self, store, make_record):
        store.replace_all([make_record("a")])
        assert store.get("a").id == "a"
        assert store.get("zzz") is None

    def test_delete_one(self, store, make_record):
        store.replace_all([make_record("a"), make_record("b")])
        assert store.delete_one("a") is True
        assert [r.id for r in store.list()] == ["b"]
        assert store.pending_deletes() == set()

    def test_delete_missing_returns_false(self, store, make_record):
        store.replace_all([make_record("a")])
        assert store.delete_one("zzz") is False

    def test_delete_with_tracking_records_tombstone(self, store, make_record):
        store.replace_all([make_record("a")])
        store.delete_one("a", track_delete=True)
        assert store.pending_deletes() == {"a"}

    def test_clear_keeps_remote_config_and_tombstones(self, store, make_record):
        store.replace_all([make_record("a")])
        store.save_remote_config("https://x.supabase.co", "key")
        store.add_pending_deletes(["gone"])
        store.clear()
        assert store.list() == []
        assert store.load_remote_config() == {"endpoint": "https://x.supabase.co", "credential": "key"}
        assert store.pending_deletes() == {"gone"}


class TestReadFailures:
    def test_corrupt_json_reads_as_empty(self, store):
        _raw_put(store, RECORDS_KEY, "{not json")
        assert store.list() == []
        assert isinstance(store.last_read_error, StoreReadError)

    def test_non_list_payload_reads_as_empty(self, store):
        _raw_put(store, RECORDS_KEY, json.dumps({"id": "a"}))
        assert store.list() == []
        assert store.last_read_error is not None

    def test_malformed_entries_are_skipped(self, store, make_record):
        good = make_record("a").to_dict()
        _raw_put(store, RECORDS_KEY, json.dumps([good, {"customerName": "no id"}, "junk"]))
        assert [r.id for r in store.list()] == ["a"]
        assert store.last_read_error is None

    def test_corrupt_pending_deletes_read_as_empty(self, store):
        _raw_put(store, PENDING_DELETES_KEY, "nope")
        assert store.pending_deletes() == set()


class TestWriteFailures:
    def test_quota_exceeded_leaves_previous_content(self, tmp_path, make_record):
        store = LocalStore(tmp_path / "small.db", quota_bytes=1200)
        store.replace_all([make_record("a")])

        big = [make_record(f"r{i}", customer_name="x" * 200) for i in range(20)]
        with pytest.raises(StoreWriteError, match="Storage full"):
            store.replace_all(big)

        assert [r.id for r in store.list()] == ["a"]

    def test_sqlite_failure_is_store_write_error(self, store, make_record, monkeypatch):
        store.replace_all([make_record("a")])

        def broken_put(conn, key, value):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(store, "_put", broken_put)
        with pytest.raises(StoreWriteError, match="disk I/O error"):
            store.replace_all([make_record("b")])
        monkeypatch.undo()
        assert [r.id for r in store.list()] == ["a"]

    def test_records_and_tombstones_written_together(self, store, make_record, monkeypatch):
        store.replace_all([make_record("a"), make_record("b")])
        calls = []

        original_put = store._put

        def fail_on_tombstones(conn, key, value):
            calls.append(key)
            if key == PENDING_DELETES_KEY:
                raise sqlite3.OperationalError("locked")
            original_put(conn, key, value)

        monkeypatch.setattr(store, "_put", fail_on_tombstones)
        with pytest.raises(StoreWriteError):
            store.delete_one("a", track_delete=True)
        monkeypatch.undo()

        assert calls == [RECORDS_KEY, PENDING_DELETES_KEY]
        assert [r.id for r in store.list()] == ["a", "b"]
        assert store.pending_deletes() == set()


class TestRemoteConfig:
    def test_missing_config(self, store):
        assert store.load_remote_config() is None

    def test_save_load_clear(self, store):
        store.save_remote_config("https://x.supabase.co", "secret")
        assert store.load_remote_config()["credential"] == "secret"
        store.clear_remote_config()
        assert store.load_remote_config() is None


class TestPendingDeletes:
    def test_add_and_discard(self, store):
        store.add_pending_deletes(["a", "b"])
        store.discard_pending_deletes(["a", "zzz"])
        assert store.pending_deletes() == {"b"}

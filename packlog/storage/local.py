"""Local record store for packlog.

Durable, synchronous, process-local. The whole record collection is one
JSON document under a fixed key in a small SQLite key/value table, so every
write is a single transaction: it either lands completely or the previous
collection stays as it was.

Keys in ``kv_store``:

- ``packlog_records``: the record collection (most recent first).
- ``packlog_remote_config``: ``{"endpoint", "credential"}`` of the remote
  replica; survives :meth:`LocalStore.clear`.
- ``packlog_pending_deletes``: ids deleted locally whose remote delete has not
  been confirmed yet.
"""

import contextlib
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from packlog.protocols import StoreReadError, StoreWriteError
from packlog.types import Record

logger = logging.getLogger(__name__)

RECORDS_KEY = "packlog_records"
REMOTE_CONFIG_KEY = "packlog_remote_config"
PENDING_DELETES_KEY = "packlog_pending_deletes"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class LocalStore:
    """Key/value backed record collection.

    Args:
        db_path: SQLite file. Parent directories are created.
        quota_bytes: Optional cap on the serialized record collection; a write
            over the cap fails with :class:`StoreWriteError`.
    """

    def __init__(self, db_path: Path, quota_bytes: Optional[int] = None):
        self.db_path = Path(db_path)
        self.quota_bytes = quota_bytes
        self.last_read_error: Optional[StoreReadError] = None

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(SCHEMA)

    @contextlib.contextmanager
    def _connect(self):
        """Connection that commits on success, rolls back on error, always closes."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000")
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def _put(self, conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, self._now()),
        )

    # === Records ===

    def list(self) -> List[Record]:
        """All records in stored order.

        Unreadable storage yields ``[]``; the failure is logged and kept on
        :attr:`last_read_error` rather than raised.
        """
        self.last_read_error = None
        try:
            raw = self._get(RECORDS_KEY)
        except sqlite3.Error as e:
            return self._read_failed(f"Failed to read records: {e}")
        if raw is None:
            return []

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            return self._read_failed(f"Stored records are not valid JSON: {e}")
        if not isinstance(payload, list):
            return self._read_failed("Stored records are not a list")

        records: List[Record] = []
        for item in payload:
            try:
                records.append(Record.from_dict(item))
            except ValueError as e:
                logger.warning(f"Skipping malformed stored record: {e}")
        return records

    def _read_failed(self, message: str) -> List[Record]:
        error = StoreReadError(message)
        self.last_read_error = error
        logger.error(message)
        return []

    def replace_all(
        self, records: Iterable[Record], *, pending_deletes: Optional[Set[str]] = None
    ) -> None:
        """Atomically replace the whole collection.

        Args:
            records: The new collection, in the order to keep.
            pending_deletes: If given, the tombstone set is replaced in the
                same transaction.

        Raises:
            StoreWriteError: quota exceeded or SQLite failure. Nothing changed.
        """
        records = list(records)
        payload = json.dumps([r.to_dict() for r in records], separators=(",", ":"))

        if self.quota_bytes is not None and len(payload.encode("utf-8")) > self.quota_bytes:
            raise StoreWriteError(
                f"Storage full: {len(records)} records need "
                f"{len(payload.encode('utf-8'))} bytes, quota is {self.quota_bytes}. "
                "Delete some old bills or images."
            )

        try:
            with self._connect() as conn:
                self._put(conn, RECORDS_KEY, payload)
                if pending_deletes is not None:
                    self._put(conn, PENDING_DELETES_KEY, json.dumps(sorted(pending_deletes)))
        except sqlite3.Error as e:
            logger.error(f"Failed to save records: {e}", exc_info=True)
            raise StoreWriteError(f"Failed to save records: {e}") from e

    def get(self, record_id: str) -> Optional[Record]:
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def upsert_one(self, record: Record) -> Record:
        """Replace the record with the same id, or put it first."""
        records = self.list()
        for i, existing in enumerate(records):
            if existing.id == record.id:
                records[i] = record
                break
        else:
            records.insert(0, record)
        self.replace_all(records)
        return record

    def delete_one(self, record_id: str, *, track_delete: bool = False) -> bool:
        """Remove one record. Returns False if it was not there.

        With ``track_delete`` the id is added to the pending remote deletes in
        the same write.
        """
        records = self.list()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        pending = None
        if track_delete:
            pending = self.pending_deletes() | {record_id}
        self.replace_all(remaining, pending_deletes=pending)
        return True

    def clear(self) -> None:
        """Drop every record. Remote config and pending deletes are kept."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (RECORDS_KEY,))
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to clear records: {e}") from e
        logger.info("Local records cleared")

    # === Pending remote deletes ===

    def pending_deletes(self) -> Set[str]:
        try:
            raw = self._get(PENDING_DELETES_KEY)
            return set(json.loads(raw)) if raw else set()
        except (sqlite3.Error, json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Could not read pending deletes: {e}")
            return set()

    def add_pending_deletes(self, record_ids: Iterable[str]) -> None:
        self._write_pending(self.pending_deletes() | set(record_ids))

    def discard_pending_deletes(self, record_ids: Iterable[str]) -> None:
        current = self.pending_deletes()
        remaining = current - set(record_ids)
        if remaining != current:
            self._write_pending(remaining)

    def _write_pending(self, ids: Set[str]) -> None:
        try:
            with self._connect() as conn:
                self._put(conn, PENDING_DELETES_KEY, json.dumps(sorted(ids)))
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to save pending deletes: {e}") from e

    # === Remote connection config ===

    def load_remote_config(self) -> Optional[Dict[str, str]]:
        try:
            raw = self._get(REMOTE_CONFIG_KEY)
            config: Any = json.loads(raw) if raw else None
        except (sqlite3.Error, json.JSONDecodeError) as e:
            logger.warning(f"Could not read remote config: {e}")
            return None
        if not isinstance(config, dict) or not config.get("endpoint"):
            return None
        return {"endpoint": str(config["endpoint"]), "credential": str(config.get("credential", ""))}

    def save_remote_config(self, endpoint: str, credential: str) -> None:
        try:
            with self._connect() as conn:
                self._put(
                    conn,
                    REMOTE_CONFIG_KEY,
                    json.dumps({"endpoint": endpoint, "credential": credential}),
                )
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to save remote config: {e}") from e

    def clear_remote_config(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (REMOTE_CONFIG_KEY,))
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to clear remote config: {e}") from e

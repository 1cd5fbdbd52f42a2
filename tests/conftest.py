"""
Pytest fixtures and test configuration for packlog tests.
"""

import asyncio
import logging
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest

from packlog import logging_config
from packlog.config import Settings, get_settings
from packlog.core import PackLog
from packlog.storage import LocalStore, RemoteReplicaClient
from packlog.types import PackingStatus, Record
from packlog.utils import MonotonicClock

TEST_ENDPOINT = "https://test.supabase.co"
TEST_KEY = "test-anon-key"


@pytest.fixture(autouse=True)
def packlog_home(tmp_path, monkeypatch):
    """Point every test at its own data directory and fresh settings."""
    home = tmp_path / "packlog-home"
    monkeypatch.setenv("PACKLOG_DATA_DIR", str(home))
    for var in ("PACKLOG_REMOTE_URL", "PACKLOG_REMOTE_KEY", "PACKLOG_DB_PATH", "PACKLOG_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(logging_config, "_data_dir", None)
    get_settings.cache_clear()
    yield home
    get_settings.cache_clear()
    pkg_logger = logging.getLogger("packlog")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(logging.NOTSET)


# =============================================================================
# Fake Supabase async client
# =============================================================================


class FakeQuery:
    """Chainable query builder over :class:`FakeSupabase` rows."""

    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op: Optional[str] = None
        self._payload: Any = None
        self._filters: List[tuple] = []
        self._order: Optional[str] = None
        self._range: Optional[tuple] = None

    def select(self, columns="*"):
        self._op = "select"
        return self

    def order(self, column, desc=False):
        self._order = column
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def upsert(self, row):
        self._op = "upsert"
        self._payload = row
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    async def execute(self):
        db = self._db
        db.tables_used.add(self._table)
        if self._op == "select":
            db.select_calls += 1
            if db.read_gate is not None:
                await db.read_gate.wait()
            if db.fail_reads:
                raise httpx.ConnectError("remote unreachable")
            rows = list(db.rows.values())
            if self._order:
                rows.sort(key=lambda r: r[self._order])
            if self._range:
                start, end = self._range
                rows = rows[start : end + 1]
            return SimpleNamespace(data=[dict(r) for r in rows])

        if self._op == "upsert":
            row = self._payload
            if db.fail_writes or row["id"] in db.fail_ids:
                raise httpx.ConnectError("remote unreachable")
            db.upserts.append(row["id"])
            db.rows[row["id"]] = dict(row)
            return SimpleNamespace(data=[row])

        if self._op == "delete":
            ids = [value for column, value in self._filters if column == "id"]
            if db.fail_writes or any(i in db.fail_ids for i in ids):
                raise httpx.ConnectError("remote unreachable")
            removed = []
            for record_id in ids:
                db.deletes.append(record_id)
                if record_id in db.rows:
                    removed.append(db.rows.pop(record_id))
            return SimpleNamespace(data=removed)

        raise AssertionError(f"Unsupported fake operation: {self._op}")


class FakeSupabase:
    """In-memory stand-in for ``supabase.AsyncClient`` over one table."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.upserts: List[str] = []
        self.deletes: List[str] = []
        self.select_calls = 0
        self.tables_used = set()
        self.fail_reads = False
        self.fail_writes = False
        self.fail_connect = False
        self.fail_ids = set()
        self.read_gate: Optional[asyncio.Event] = None
        self.connections: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    async def factory(self, url: str, key: str) -> "FakeSupabase":
        self.connections.append((url, key))
        if self.fail_connect:
            raise httpx.ConnectError("cannot reach host")
        return self

    def put(self, record: Record) -> None:
        """Seed a remote row directly."""
        self.rows[record.id] = RemoteReplicaClient.to_row(record)

    def record(self, record_id: str) -> Optional[Record]:
        row = self.rows.get(record_id)
        return Record.from_dict(row["data"]) if row else None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_record():
    """Factory for records with sensible defaults."""

    def _make(record_id="1", updated_at=100, created_at=None, status=PackingStatus.PENDING, **kw):
        created = created_at if created_at is not None else updated_at
        packed_at = kw.pop("packed_at", updated_at if status == PackingStatus.PACKED else None)
        kw.setdefault("entry_date", "2024-05-01")
        return Record(
            id=record_id,
            created_at=created,
            updated_at=updated_at,
            status=status,
            packed_at=packed_at,
            **kw,
        )

    return _make


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "test.db")


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def remote(store, fake_db):
    """Remote client over the fake; not connected yet."""
    return RemoteReplicaClient(store, client_factory=fake_db.factory, page_size=2)


@pytest.fixture
def connected_remote(remote, fake_db):
    """Remote client with an open session on the fake."""
    remote._client = fake_db
    remote.endpoint = TEST_ENDPOINT
    return remote


class SteppingNow:
    """Wall clock that advances by a fixed step on every read."""

    def __init__(self, start=1_000, step=10):
        self.value = start
        self.step = step

    def __call__(self) -> int:
        self.value += self.step
        return self.value


@pytest.fixture
def clock():
    return MonotonicClock(SteppingNow())


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "settings-home", auto_sync=True)


@pytest.fixture
def packlog(store, remote, clock, settings):
    """Offline PackLog over the fake remote. Duplicates are accepted."""
    log = PackLog(
        store=store,
        remote=remote,
        settings=settings,
        confirm_duplicate=lambda existing, candidate: True,
        clock=clock,
    )
    log.current_date = "2024-05-01"
    return log


@pytest.fixture
def online_packlog(packlog, connected_remote):
    """PackLog with the fake remote connected."""
    return packlog

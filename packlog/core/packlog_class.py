"""PackLog class, the main interface for bill tracking.

This module assembles the PackLog class from the operation mixins and
wires the storage stack: one LocalStore, one RemoteReplicaClient, one
MutationQueue and the SyncReconciler and BatchMutator built on them.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, Union

from packlog.config import Settings, get_settings
from packlog.core.batch import BatchMutator, BatchOperation
from packlog.core.records import RecordsMixin
from packlog.core.sync import SyncMixin
from packlog.core.views import ViewsMixin
from packlog.protocols import RemoteReplica
from packlog.storage import LocalStore, MutationQueue, RemoteReplicaClient, SyncReconciler
from packlog.types import BatchResult, PushResult, Record, SyncResult
from packlog.utils import MonotonicClock, today_string, validate_entry_date

logger = logging.getLogger(__name__)

ConfirmDuplicate = Callable[
    [Record, Dict[str, Any]], Union[bool, Awaitable[bool]]
]


class PackLog(RecordsMixin, ViewsMixin, SyncMixin):
    """Offline-first bill tracker.

    Examples:
        log = PackLog()
        await log.start()
        bill = await log.create_record({"customerName": "Acme", "invoiceNo": "INV-1"})
        await log.batch_apply([bill.id], BulkPack())

    Args:
        store: Local store; built from settings if omitted.
        remote: Remote replica; a Supabase client over ``store`` if omitted.
        settings: Configuration; ``get_settings()`` if omitted.
        confirm_duplicate: Called with ``(existing, candidate_fields)`` when a
            capture matches an existing invoice. May be async. Without it a
            duplicate raises ``DuplicateRecordError``.
        clock: Timestamp source.
    """

    def __init__(
        self,
        store: Optional[LocalStore] = None,
        remote: Optional[RemoteReplica] = None,
        settings: Optional[Settings] = None,
        confirm_duplicate: Optional[ConfirmDuplicate] = None,
        clock: Optional[MonotonicClock] = None,
    ):
        self._settings = settings or get_settings()
        self._store = store or LocalStore(
            self._settings.resolved_db_path(),
            quota_bytes=self._settings.store_quota_bytes,
        )
        self._remote = remote or RemoteReplicaClient(
            self._store,
            table=self._settings.remote_table,
            page_size=self._settings.remote_page_size,
        )
        self._clock = clock or MonotonicClock()
        self._queue = MutationQueue()
        self._reconciler = SyncReconciler(self._store, self._remote, self._queue)
        self._batch = BatchMutator(
            self._store, self._reconciler, self._remote, self._queue, self._clock
        )
        self._confirm_duplicate_fn = confirm_duplicate
        self._current_date: Optional[str] = None

        self.last_sync: Optional[SyncResult] = None
        self.last_push: Optional[PushResult] = None

        logger.debug(
            f"PackLog initialized with store: {self._store.db_path}, "
            f"remote: {type(self._remote).__name__}"
        )

    @property
    def store(self) -> LocalStore:
        return self._store

    @property
    def remote(self) -> RemoteReplica:
        return self._remote

    @property
    def reconciler(self) -> SyncReconciler:
        return self._reconciler

    @property
    def current_date(self) -> str:
        """Workday new records are logged under; today unless set."""
        return self._current_date or today_string()

    @current_date.setter
    def current_date(self, value: Optional[str]) -> None:
        self._current_date = validate_entry_date(value) if value else None

    # === Batch ===

    async def batch_apply(self, ids: Iterable[str], operation: BatchOperation) -> BatchResult:
        """Apply one operation to many records; see :class:`BatchMutator`."""
        return await self._batch.apply(ids, operation)

    def group_defaults(self, ids: Iterable[str]) -> Tuple[str, Optional[str]]:
        return self._batch.group_defaults(ids)

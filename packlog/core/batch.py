"""Batch operations over many records.

Every operation follows the same shape: inside one mutation slot read the
whole collection, transform the targeted records with a single timestamp,
write the collection back in one transaction; then propagate remotely. The
local part is all-or-nothing. The remote part is best effort and heals on
the next full sync.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from packlog.logging_config import log_batch, log_delete
from packlog.protocols import RemoteReplica, StoreWriteError
from packlog.storage import LocalStore, MutationQueue, SyncReconciler
from packlog.themes import validate_color_theme
from packlog.types import BatchResult, PackingStatus, Record
from packlog.utils import MonotonicClock

logger = logging.getLogger(__name__)


class BatchOperation:
    """A transformation applied to every targeted record."""

    name = "batch"
    deletes = False

    def apply(self, record: Record, stamp: int) -> Record:
        raise NotImplementedError


@dataclass
class GroupEdit(BatchOperation):
    """Put records under one group label and color tag."""

    description: str
    color_theme: Optional[str] = None

    name = "group_edit"

    def __post_init__(self):
        self.description = (self.description or "").strip()
        self.color_theme = validate_color_theme(self.color_theme)

    def apply(self, record: Record, stamp: int) -> Record:
        return record.with_changes(
            stamp, description=self.description, color_theme=self.color_theme
        )


@dataclass
class BulkStatus(BatchOperation):
    """Move records to one status; packed_at follows the status."""

    status: PackingStatus

    name = "bulk_status"

    def apply(self, record: Record, stamp: int) -> Record:
        return record.with_status(PackingStatus(self.status), stamp)


class BulkPack(BulkStatus):
    """Mark records PACKED."""

    name = "bulk_pack"

    def __init__(self):
        super().__init__(PackingStatus.PACKED)

    def apply(self, record: Record, stamp: int) -> Record:
        # Every record in the batch gets the batch timestamp, even ones that
        # were already packed.
        return dataclasses.replace(
            record, status=PackingStatus.PACKED, packed_at=stamp, updated_at=stamp
        )


class BulkDelete(BatchOperation):
    """Remove records locally and remotely."""

    name = "bulk_delete"
    deletes = True


class BatchMutator:
    """Applies one operation to a set of record ids.

    Args:
        store: Local store.
        reconciler: Sync engine used for propagation.
        remote: Remote replica, consulted for connectivity.
        queue: Mutation queue shared with every other local writer.
        clock: Timestamp source for the batch stamp.
    """

    def __init__(
        self,
        store: LocalStore,
        reconciler: SyncReconciler,
        remote: RemoteReplica,
        queue: MutationQueue,
        clock: MonotonicClock,
    ):
        self._store = store
        self._reconciler = reconciler
        self._remote = remote
        self._queue = queue
        self._clock = clock

    async def apply(self, ids: Iterable[str], operation: BatchOperation) -> BatchResult:
        """Apply ``operation`` to every record whose id is in ``ids``.

        Unknown ids are ignored. An empty selection writes nothing.

        Raises:
            StoreWriteError: the local write failed; no record changed.
        """
        targets: Set[str] = set(ids)
        result = BatchResult(operation=operation.name)
        if not targets:
            return result

        connected = self._remote.is_connected()

        async with self._queue.slot(operation.name):
            records = self._store.list()
            for record in records:
                self._clock.observe(record.updated_at)
            stamp = self._clock.tick()

            if operation.deletes:
                kept = [r for r in records if r.id not in targets]
                result.affected = [r.id for r in records if r.id in targets]
                pending = None
                if connected and result.affected:
                    pending = self._store.pending_deletes() | set(result.affected)
                if result.affected:
                    self._store.replace_all(kept, pending_deletes=pending)
            else:
                updated: List[Record] = []
                for record in records:
                    if record.id in targets:
                        record = operation.apply(record, stamp)
                        result.affected.append(record.id)
                    updated.append(record)
                if result.affected:
                    self._store.replace_all(updated)

        if not result.affected:
            logger.debug(f"{operation.name}: no matching records")
            return result

        result.stamp = stamp
        logger.info(f"{operation.name}: {result.count} records at {stamp}")
        log_batch(operation.name, result.count, stamp)

        if operation.deletes:
            log_delete(result.affected, tracked=connected)
            if connected:
                for record_id in result.affected:
                    push = await self._reconciler.push_delete(record_id)
                    if push.error:
                        result.remote_errors.append(push.error)
        elif connected:
            try:
                result.sync = await self._reconciler.full_sync()
            except StoreWriteError as e:
                # The batch itself is committed; the next sync_now retries.
                logger.warning(f"{operation.name}: follow-up sync could not be stored: {e}")
                result.remote_errors.append(f"Sync not stored: {e}")
            else:
                result.remote_errors.extend(result.sync.errors)

        return result

    def group_defaults(self, ids: Iterable[str]) -> Tuple[str, Optional[str]]:
        """First non-empty group label and color among the selected records."""
        targets = set(ids)
        selected = [r for r in self._store.list() if r.id in targets]
        description = next((r.description for r in selected if r.description), "")
        color_theme = next((r.color_theme for r in selected if r.color_theme), None)
        return description, color_theme

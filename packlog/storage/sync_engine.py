"""Sync engine for packlog.

SyncReconciler keeps the local store and the remote replica in agreement:

- ``push_one`` / ``push_delete`` mirror a single local change right after it
  committed locally.
- ``full_sync`` pulls every remote record, merges last-writer-wins by
  ``updatedAt`` (local wins ties), rewrites the local store, then pushes
  whatever is newer locally and retries pending deletes.

Remote failures never escape this module as exceptions; they come back as
values (PushResult, SyncResult.errors) and are logged. Local write failures
do escape: losing a local write must reach the user.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from packlog.logging_config import log_sync
from packlog.protocols import RemoteReadError, RemoteReplica, RemoteWriteError
from packlog.types import PushResult, Record, SyncConflict, SyncResult

from .local import LocalStore
from .mutations import MutationQueue

logger = logging.getLogger(__name__)


def merge_records(
    local_records: List[Record],
    remote_records: List[Record],
    pending_deletes: Optional[Set[str]] = None,
) -> tuple[List[Record], int, List[SyncConflict]]:
    """Last-writer-wins merge keyed by id.

    Args:
        local_records: Current local collection.
        remote_records: Remote snapshot.
        pending_deletes: Ids deleted locally and not yet deleted remotely;
            their remote copies are not merged back.

    Returns:
        ``(merged, pulled, conflicts)``: merged records sorted by
        ``created_at`` descending, how many remote copies replaced or added a
        local entry, and the pairs that differed.
    """
    pending_deletes = pending_deletes or set()
    merged: Dict[str, Record] = {r.id: r for r in local_records}
    pulled = 0
    conflicts: List[SyncConflict] = []

    for remote in remote_records:
        if remote.id in pending_deletes:
            continue
        local = merged.get(remote.id)
        if local is None:
            merged[remote.id] = remote
            pulled += 1
            continue
        if local == remote:
            continue
        # Strictly greater: on equal timestamps the local copy stays.
        if remote.updated_at > local.updated_at:
            merged[remote.id] = remote
            pulled += 1
            resolution = "remote_wins"
        else:
            resolution = "local_wins"
        conflicts.append(
            SyncConflict(
                record_id=remote.id,
                local_updated_at=local.updated_at,
                remote_updated_at=remote.updated_at,
                resolution=resolution,
            )
        )

    ordered = sorted(merged.values(), key=lambda r: r.created_at, reverse=True)
    return ordered, pulled, conflicts


class SyncReconciler:
    """Push and full-reconciliation entry points.

    Args:
        store: Local store.
        remote: Remote replica; every call is skipped while it is not
            connected.
        queue: Mutation queue shared with every other local writer.
    """

    def __init__(self, store: LocalStore, remote: RemoteReplica, queue: MutationQueue):
        self._store = store
        self._remote = remote
        self._queue = queue
        self._inflight: Optional[asyncio.Future] = None
        self._failed_pushes: Set[str] = set()

    @property
    def failed_pushes(self) -> Set[str]:
        """Ids whose last push failed and that no full sync has healed yet."""
        return set(self._failed_pushes)

    @property
    def is_syncing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    # === Single-record push ===

    async def push_one(self, record: Record) -> PushResult:
        """Upsert one record remotely. The local change is already committed."""
        result = PushResult(record_id=record.id, operation="upsert")
        if not self._remote.is_connected():
            result.skipped = True
            return result
        try:
            await self._remote.upsert(record)
        except RemoteWriteError as e:
            logger.warning(f"Push failed for {record.id}, will retry on next sync: {e}")
            self._failed_pushes.add(record.id)
            result.error = str(e)
            return result
        self._failed_pushes.discard(record.id)
        result.ok = True
        return result

    async def push_delete(self, record_id: str) -> PushResult:
        """Delete one record remotely and clear its tombstone on success."""
        result = PushResult(record_id=record_id, operation="delete")
        if not self._remote.is_connected():
            result.skipped = True
            return result
        try:
            await self._remote.delete(record_id)
        except RemoteWriteError as e:
            logger.warning(f"Remote delete failed for {record_id}, will retry on next sync: {e}")
            result.error = str(e)
            return result
        self._store.discard_pending_deletes([record_id])
        self._failed_pushes.discard(record_id)
        result.ok = True
        return result

    # === Full reconciliation ===

    async def full_sync(self) -> SyncResult:
        """Pull, merge, rewrite local, push.

        Only one pass runs at a time; a call made while a pass is running
        waits for it and gets the same result.

        Raises:
            StoreWriteError: the merged collection could not be written
                locally. Local content is unchanged.
        """
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Full sync already running, joining it")
            return await asyncio.shield(self._inflight)

        self._inflight = asyncio.ensure_future(self._run_full_sync())
        try:
            return await asyncio.shield(self._inflight)
        finally:
            if self._inflight is not None and self._inflight.done():
                self._inflight = None

    async def _run_full_sync(self) -> SyncResult:
        if not self._remote.is_connected():
            logger.debug("No remote configured, skipping sync")
            return SyncResult(records=self._store.list(), offline=True)

        try:
            remote_records = await self._remote.list_all()
        except RemoteReadError as e:
            logger.warning(f"Remote unavailable, keeping local state: {e}")
            result = SyncResult(records=self._store.list(), offline=True, errors=[str(e)])
            self._log(result)
            return result

        async with self._queue.slot("full_sync"):
            local_records = self._store.list()
            pending_deletes = self._store.pending_deletes()
            merged, pulled, conflicts = merge_records(
                local_records, remote_records, pending_deletes
            )
            self._store.replace_all(merged)

        result = SyncResult(records=merged, pulled=pulled, conflicts=conflicts)

        remote_by_id = {r.id: r for r in remote_records}
        for record in merged:
            remote = remote_by_id.get(record.id)
            if remote is not None and record.updated_at <= remote.updated_at:
                # Remote already holds this version.
                self._failed_pushes.discard(record.id)
                continue
            push = await self.push_one(record)
            if push.ok:
                result.pushed += 1
            elif push.error:
                result.errors.append(push.error)

        self._failed_pushes &= {r.id for r in merged}

        for record_id in sorted(pending_deletes):
            push = await self.push_delete(record_id)
            if push.ok:
                result.deleted += 1
            elif push.error:
                result.errors.append(push.error)

        logger.info(
            f"Sync complete: pushed={result.pushed}, pulled={result.pulled}, "
            f"deleted={result.deleted}, conflicts={result.conflict_count}, "
            f"errors={len(result.errors)}"
        )
        self._log(result)
        return result

    def _log(self, result: SyncResult) -> None:
        log_sync(
            result.pushed,
            result.pulled,
            result.deleted,
            result.conflict_count,
            len(result.errors),
            result.offline,
        )

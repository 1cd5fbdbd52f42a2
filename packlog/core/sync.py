"""Remote connection and synchronization operations for PackLog."""

import logging
from typing import List

from packlog.types import Record, SyncResult

logger = logging.getLogger(__name__)


class SyncMixin:
    """Connect, disconnect and reconcile with the remote replica."""

    @property
    def is_online(self) -> bool:
        """True while a remote session is configured."""
        return self._remote.is_connected()

    async def connect_remote(self, endpoint: str, credential: str) -> bool:
        """Open a remote session and run a full sync on success.

        Returns:
            False if the connection could not be set up; nothing is kept.
        """
        if not await self._remote.configure(endpoint, credential):
            return False
        await self.sync_now()
        return True

    def disconnect_remote(self) -> None:
        """Drop the remote session and its saved config. Records stay local."""
        self._remote.disconnect()

    async def sync_now(self) -> List[Record]:
        """Full reconciliation. Returns the resulting local records.

        The detailed outcome is kept on :attr:`last_sync`.
        """
        result: SyncResult = await self._reconciler.full_sync()
        self.last_sync = result
        if result.errors:
            logger.warning(
                f"Sync finished with {len(result.errors)} errors: {result.errors[:3]}"
            )
        return result.records

    async def start(self) -> List[Record]:
        """Startup: restore a saved remote session and sync if enabled.

        A remote configured through settings is used when nothing was saved.
        Returns the local records after any sync.
        """
        restored = await self._remote.restore()
        if not restored and self._settings.remote_url and self._settings.remote_key:
            restored = await self._remote.configure(
                self._settings.remote_url, self._settings.remote_key
            )
        if restored and self._settings.auto_sync:
            return await self.sync_now()
        return self._store.list()

    @property
    def pending_remote_changes(self) -> int:
        """Failed pushes and unconfirmed deletes waiting for the next sync."""
        return len(self._reconciler.failed_pushes) + len(self._store.pending_deletes())

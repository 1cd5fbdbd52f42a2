"""
Error types and the remote replica contract.

The reconciler and the batch mutator only talk to the remote through
:class:`RemoteReplica`, so tests and alternative backends can swap the
Supabase client out.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from packlog.types import Record

# =============================================================================
# ERRORS
# =============================================================================


class PackLogError(Exception):
    """Base for all packlog errors."""

    pass


class StoreError(PackLogError):
    """Raised by the local store."""

    pass


class StoreReadError(StoreError):
    """Local storage could not be read or decoded. Non-fatal."""

    pass


class StoreWriteError(StoreError):
    """Local storage rejected a write. The previous content is intact.

    Must reach the user: a lost local write is the one failure an
    offline-first store cannot recover from.
    """

    pass


class RemoteError(PackLogError):
    """Raised by the remote replica client."""

    pass


class RemoteReadError(RemoteError):
    """Listing the remote table failed."""

    pass


class RemoteWriteError(RemoteError):
    """An upsert or delete against the remote table failed."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class RemoteConfigError(RemoteError):
    """A remote session could not be set up, or none is configured."""

    pass


class RecordNotFoundError(PackLogError, KeyError):
    """No record with the given id in the local store."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"No record with id {self.record_id!r}"


class DuplicateRecordError(PackLogError):
    """A capture matches an existing invoice and nobody confirmed it."""

    def __init__(self, existing: Record, candidate: Dict[str, Any]):
        super().__init__(
            f"Invoice {candidate.get('invoiceNo', '')!r} already recorded as {existing.id}"
        )
        self.existing = existing
        self.candidate = candidate


# =============================================================================
# REMOTE REPLICA
# =============================================================================


@runtime_checkable
class RemoteReplica(Protocol):
    """Async mirror of the local store keyed by record id."""

    async def configure(self, endpoint: str, credential: str) -> bool: ...

    async def restore(self) -> bool: ...

    async def list_all(self) -> List[Record]: ...

    async def upsert(self, record: Record) -> None: ...

    async def delete(self, record_id: str) -> None: ...

    def is_connected(self) -> bool: ...

    def disconnect(self) -> None: ...

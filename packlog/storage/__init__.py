"""packlog storage backends.

Local-first: the SQLite-backed LocalStore is the source of truth on a
device; the Supabase replica is a best-effort mirror reconciled by the sync
engine.
"""

from .local import PENDING_DELETES_KEY, RECORDS_KEY, REMOTE_CONFIG_KEY, LocalStore
from .mutations import MutationQueue
from .remote import RemoteReplicaClient, validate_endpoint
from .sync_engine import SyncReconciler, merge_records

__all__ = [
    "LocalStore",
    "MutationQueue",
    "RemoteReplicaClient",
    "SyncReconciler",
    "merge_records",
    "validate_endpoint",
    "RECORDS_KEY",
    "REMOTE_CONFIG_KEY",
    "PENDING_DELETES_KEY",
]

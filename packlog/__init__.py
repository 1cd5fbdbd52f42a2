"""
packlog - offline-first bill packing tracker.

Local records first, a Supabase mirror when one is configured, and
last-writer-wins reconciliation between the two.
"""

from .core import BulkDelete, BulkPack, BulkStatus, GroupEdit, PackLog
from .types import PackingStatus, Record

try:
    from importlib.metadata import version

    __version__ = version("packlog")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "PackLog",
    "Record",
    "PackingStatus",
    "GroupEdit",
    "BulkPack",
    "BulkStatus",
    "BulkDelete",
]

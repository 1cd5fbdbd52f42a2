"""Core PackLog interface and batch operations."""

from packlog.core.batch import (
    BatchMutator,
    BatchOperation,
    BulkDelete,
    BulkPack,
    BulkStatus,
    GroupEdit,
)
from packlog.core.packlog_class import PackLog

__all__ = [
    "PackLog",
    "BatchMutator",
    "BatchOperation",
    "BulkDelete",
    "BulkPack",
    "BulkStatus",
    "GroupEdit",
]

"""
Shared record types for packlog.

Record is the unit everything else moves around: the local store persists
it, the remote replica mirrors it, the reconciler merges it. The JSON shape
(camelCase keys) is what lands in the remote ``data`` column, so other
clients of the same table read the same payload.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Enums ===


class PackingStatus(str, Enum):
    """Where a bill is in the packing lifecycle."""

    PENDING = "PENDING"
    PACKED = "PACKED"


VALID_STATUS_VALUES = frozenset(s.value for s in PackingStatus)


# attribute name -> JSON key
_JSON_KEYS: Dict[str, str] = {
    "id": "id",
    "customer_name": "customerName",
    "address": "address",
    "invoice_no": "invoiceNo",
    "bill_date": "billDate",
    "status": "status",
    "is_delivery": "isDelivery",
    "has_crn": "hasCRN",
    "is_edited_bill": "isEditedBill",
    "is_additional_bill": "isAdditionalBill",
    "box_count": "boxCount",
    "description": "description",
    "color_theme": "colorTheme",
    "entry_date": "entryDate",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "packed_at": "packedAt",
    "image_url": "imageUrl",
}

# Fields a caller may change through a patch. Identity, timestamps and the
# workday a record belongs to are owned by the core.
EDITABLE_FIELDS = frozenset(
    {
        "customer_name",
        "address",
        "invoice_no",
        "bill_date",
        "status",
        "is_delivery",
        "has_crn",
        "is_edited_bill",
        "is_additional_bill",
        "box_count",
        "description",
        "color_theme",
        "image_url",
    }
)

_OPTIONAL_KEYS = frozenset({"colorTheme", "packedAt", "imageUrl"})


def field_name(key: str) -> str:
    """Map a JSON key or attribute name to the attribute name."""
    if key in _JSON_KEYS:
        return key
    for attr, json_key in _JSON_KEYS.items():
        if json_key == key:
            return attr
    raise KeyError(key)


@dataclass(frozen=True)
class Record:
    """A tracked bill.

    Records are immutable values; every mutation produces a new Record with
    the same ``id`` and a fresh ``updated_at``.
    """

    id: str
    entry_date: str
    created_at: int
    updated_at: int
    customer_name: str = ""
    address: str = ""
    invoice_no: str = ""
    bill_date: str = ""
    status: PackingStatus = PackingStatus.PENDING
    is_delivery: bool = False
    has_crn: bool = False
    is_edited_bill: bool = False
    is_additional_bill: bool = False
    box_count: int = 0
    description: str = ""
    color_theme: Optional[str] = None
    packed_at: Optional[int] = None
    image_url: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Record id cannot be empty")
        if self.box_count < 0:
            raise ValueError(f"box_count must be >= 0, got {self.box_count}")
        if (self.status == PackingStatus.PACKED) != (self.packed_at is not None):
            raise ValueError("packed_at must be set if and only if status is PACKED")

    @property
    def is_packed(self) -> bool:
        return self.status == PackingStatus.PACKED

    def with_changes(self, updated_at: int, **changes: Any) -> "Record":
        """Return a copy with ``changes`` applied and ``updated_at`` stamped.

        A ``status`` change goes through :meth:`with_status` so ``packed_at``
        follows it.
        """
        status = changes.pop("status", None)
        record = dataclasses.replace(self, updated_at=updated_at, **changes)
        if status is not None:
            record = record.with_status(PackingStatus(status), updated_at)
        return record

    def with_status(self, status: PackingStatus, stamp: int) -> "Record":
        """Transition to ``status`` at ``stamp``.

        Entering PACKED sets ``packed_at``; leaving it clears it. Re-packing an
        already packed record keeps the original ``packed_at``.
        """
        if status == PackingStatus.PACKED:
            packed_at = self.packed_at if self.is_packed else stamp
        else:
            packed_at = None
        return dataclasses.replace(self, status=status, packed_at=packed_at, updated_at=stamp)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for attr, key in _JSON_KEYS.items():
            value = getattr(self, attr)
            if key in _OPTIONAL_KEYS and value is None:
                continue
            if isinstance(value, PackingStatus):
                value = value.value
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a Record from its JSON shape.

        Unknown keys are ignored. A payload whose ``packedAt`` disagrees with
        its status is repaired rather than rejected: other clients of the
        remote table have written both shapes.

        Raises:
            ValueError: missing id, unknown status or a negative box count.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Record payload must be an object, got {type(data).__name__}")
        record_id = data.get("id")
        if not record_id or not isinstance(record_id, str):
            raise ValueError("Record payload has no id")

        status_raw = data.get("status") or PackingStatus.PENDING.value
        if status_raw not in VALID_STATUS_VALUES:
            raise ValueError(f"Unknown status {status_raw!r} for record {record_id}")
        status = PackingStatus(status_raw)

        created_at = _as_int(data.get("createdAt"), 0)
        updated_at = _as_int(data.get("updatedAt"), created_at)
        packed_at = data.get("packedAt")
        if status == PackingStatus.PACKED:
            packed_at = _as_int(packed_at, updated_at)
        else:
            packed_at = None

        return cls(
            id=record_id,
            entry_date=str(data.get("entryDate") or ""),
            created_at=created_at,
            updated_at=updated_at,
            customer_name=str(data.get("customerName") or ""),
            address=str(data.get("address") or ""),
            invoice_no=str(data.get("invoiceNo") or ""),
            bill_date=str(data.get("billDate") or ""),
            status=status,
            is_delivery=bool(data.get("isDelivery", False)),
            has_crn=bool(data.get("hasCRN", False)),
            is_edited_bill=bool(data.get("isEditedBill", False)),
            is_additional_bill=bool(data.get("isAdditionalBill", False)),
            box_count=_as_int(data.get("boxCount"), 0),
            description=str(data.get("description") or ""),
            color_theme=data.get("colorTheme") or None,
            packed_at=packed_at,
            image_url=data.get("imageUrl") or None,
        )


def _as_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Expected an integer, got {value!r}")


# === Derived views ===


@dataclass
class DayGroup:
    """Records grouped under one logical workday."""

    date: str
    records: List[Record] = field(default_factory=list)


@dataclass
class DaySummary:
    """Packing counters for one workday."""

    date: str
    total: int = 0
    packed: int = 0
    pending: int = 0
    boxes: int = 0

    @property
    def progress(self) -> float:
        """Fraction of the day's bills already packed."""
        if self.total == 0:
            return 0.0
        return self.packed / self.total


# === Sync results ===


@dataclass
class SyncConflict:
    """A record that differed between local and remote during a full sync.

    Resolution is always last-writer-wins by ``updatedAt``; the conflict is
    kept for visibility, not for manual resolution.
    """

    record_id: str
    local_updated_at: int
    remote_updated_at: int
    resolution: str  # "local_wins" or "remote_wins"
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PushResult:
    """Outcome of a single remote write."""

    record_id: str
    operation: str  # "upsert" or "delete"
    ok: bool = False
    skipped: bool = False  # remote not connected
    error: Optional[str] = None


@dataclass
class SyncResult:
    """Result of a full reconciliation pass."""

    records: List[Record] = field(default_factory=list)
    pushed: int = 0  # records upserted to the remote
    pulled: int = 0  # remote copies that replaced or added a local record
    deleted: int = 0  # pending remote deletes that went through
    conflicts: List[SyncConflict] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    offline: bool = False

    @property
    def success(self) -> bool:
        return not self.offline and len(self.errors) == 0

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)


@dataclass
class BatchResult:
    """Result of a batch operation."""

    operation: str
    affected: List[str] = field(default_factory=list)
    stamp: Optional[int] = None
    sync: Optional[SyncResult] = None
    remote_errors: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.affected)

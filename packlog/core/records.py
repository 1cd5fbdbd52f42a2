"""Single-record operations for PackLog."""

import inspect
import logging
from typing import Any, Dict, Optional

from packlog.dedup import find_duplicate
from packlog.logging_config import log_delete, log_save
from packlog.protocols import DuplicateRecordError, RecordNotFoundError
from packlog.themes import validate_color_theme
from packlog.types import EDITABLE_FIELDS, PackingStatus, Record, field_name
from packlog.utils import generate_id, today_string, validate_entry_date

logger = logging.getLogger(__name__)

# Fields the extraction step hands over for a captured bill.
CAPTURE_FIELDS = ("customerName", "address", "invoiceNo", "billDate")


class RecordsMixin:
    """Create, edit and delete single records."""

    def check_duplicate(self, invoice_no: Optional[str]) -> Optional[Record]:
        """Existing record with the same invoice number, if any."""
        return find_duplicate(invoice_no, self._store.list())

    async def _confirm_duplicate(self, existing: Record, candidate: Dict[str, Any]) -> bool:
        if self._confirm_duplicate_fn is None:
            raise DuplicateRecordError(existing, candidate)
        answer = self._confirm_duplicate_fn(existing, candidate)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def create_record(
        self,
        fields: Dict[str, Any],
        *,
        entry_date: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Optional[Record]:
        """Create a PENDING record from captured fields.

        The duplicate check runs before anything is built. On a match the
        confirmation callback decides: False discards the capture and returns
        None, True creates a second, independent record.

        Args:
            fields: ``customerName``, ``address``, ``invoiceNo``, ``billDate``
                (attribute names are accepted too), plus optional
                ``boxCount`` and ``description``.
            entry_date: Workday the record belongs to; defaults to today.
            image_url: Opaque image reference stored as-is.

        Raises:
            DuplicateRecordError: duplicate found and no callback configured.
            StoreWriteError: the local write failed.
        """
        candidate = self._normalize_fields(fields)
        existing = self.check_duplicate(candidate.get("invoice_no"))
        if existing is not None:
            capture = {key: candidate.get(field_name(key), "") for key in CAPTURE_FIELDS}
            logger.info(f"Duplicate invoice {capture['invoiceNo']!r} matches {existing.id}")
            if not await self._confirm_duplicate(existing, capture):
                logger.info("Duplicate capture discarded")
                return None

        return await self._insert(candidate, entry_date=entry_date, image_url=image_url)

    async def quick_add(
        self,
        customer_name: str,
        invoice_no: str = "",
        box_count: int = 0,
        description: str = "",
        *,
        entry_date: Optional[str] = None,
    ) -> Record:
        """Add a bill typed in by hand, without a capture or duplicate check.

        The bill date defaults to the workday.
        """
        day = validate_entry_date(entry_date) if entry_date else self.current_date
        fields = {
            "customer_name": customer_name,
            "invoice_no": invoice_no,
            "box_count": box_count,
            "description": description,
            "bill_date": day,
        }
        return await self._insert(self._normalize_fields(fields), entry_date=day)

    async def _insert(
        self,
        fields: Dict[str, Any],
        *,
        entry_date: Optional[str],
        image_url: Optional[str] = None,
    ) -> Record:
        fields = dict(fields)
        # New records always start PENDING.
        fields.pop("status", None)
        stored_image = fields.pop("image_url", None)
        stamp = self._clock.tick()
        record = Record(
            id=generate_id(),
            entry_date=validate_entry_date(entry_date) if entry_date else self.current_date,
            created_at=stamp,
            updated_at=stamp,
            image_url=image_url or stored_image,
            **fields,
        )
        async with self._queue.slot("create"):
            self._store.upsert_one(record)
        log_save(record.id, "create", record.invoice_no)
        self.last_push = await self._reconciler.push_one(record)
        return record

    def get_record(self, record_id: str) -> Optional[Record]:
        return self._store.get(record_id)

    async def update_record(self, record_id: str, patch: Dict[str, Any]) -> Record:
        """Apply field edits to one record and stamp ``updatedAt``.

        Raises:
            RecordNotFoundError: no such record.
            ValueError: patch touches a field callers may not edit.
            StoreWriteError: the local write failed.
        """
        changes = self._normalize_fields(patch)
        updated: Optional[Record] = None

        def transform(records):
            nonlocal updated
            for i, record in enumerate(records):
                if record.id == record_id:
                    self._clock.observe(record.updated_at)
                    updated = record.with_changes(self._clock.tick(), **changes)
                    records[i] = updated
                    return records
            raise RecordNotFoundError(record_id)

        await self._queue.apply(self._store, transform, label="update")
        log_save(updated.id, "update", updated.invoice_no)
        self.last_push = await self._reconciler.push_one(updated)
        return updated

    async def set_status(self, record_id: str, status: PackingStatus) -> Record:
        """Toggle a record between PENDING and PACKED."""
        return await self.update_record(record_id, {"status": PackingStatus(status)})

    async def delete_record(self, record_id: str) -> bool:
        """Delete one record locally, then remotely.

        Returns False if the record did not exist.
        """
        tracked = self._remote.is_connected()
        async with self._queue.slot("delete"):
            deleted = self._store.delete_one(record_id, track_delete=tracked)
        if not deleted:
            return False
        log_delete([record_id], tracked=tracked)
        self.last_push = await self._reconciler.push_delete(record_id)
        return True

    def clear_all(self) -> None:
        """Remove every local record. The remote and its config are untouched."""
        self._store.clear()

    def _normalize_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Map JSON keys to attribute names and check them."""
        normalized: Dict[str, Any] = {}
        for key, value in (fields or {}).items():
            try:
                name = field_name(key)
            except KeyError:
                raise ValueError(f"Unknown record field: {key!r}")
            if name not in EDITABLE_FIELDS:
                raise ValueError(f"Field {key!r} cannot be set directly")
            normalized[name] = value

        for name in ("customer_name", "address", "invoice_no", "bill_date", "description"):
            if name in normalized:
                normalized[name] = str(normalized[name] or "").strip()
        if "box_count" in normalized:
            box_count = int(normalized["box_count"] or 0)
            if box_count < 0:
                raise ValueError("Box count cannot be negative")
            normalized["box_count"] = box_count
        if "status" in normalized:
            normalized["status"] = PackingStatus(normalized["status"])
        if "color_theme" in normalized:
            normalized["color_theme"] = validate_color_theme(normalized["color_theme"])
        for name in ("is_delivery", "has_crn", "is_edited_bill", "is_additional_bill"):
            if name in normalized:
                normalized[name] = bool(normalized[name])
        return normalized

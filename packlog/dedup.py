"""Duplicate detection for incoming bills.

A second capture of the same invoice is usually a mistake (same paper
photographed twice), sometimes not (a re-issued bill). Detection only warns;
the caller decides whether to keep both.
"""

from __future__ import annotations

import logging
from typing import Iterable

from packlog.types import Record

logger = logging.getLogger(__name__)


def normalize_invoice_no(value: str | None) -> str:
    """Business key for duplicate checks: trimmed and lower-cased."""
    if not value:
        return ""
    return value.strip().lower()


def find_duplicate(candidate_invoice_no: str | None, existing: Iterable[Record]) -> Record | None:
    """Return the first record sharing the candidate's invoice number.

    Args:
        candidate_invoice_no: Invoice number of the capture about to be added.
        existing: Records in store order; the first match wins.

    Returns:
        The matching record, or ``None``. Blank invoice numbers never match.
    """
    key = normalize_invoice_no(candidate_invoice_no)
    if not key:
        return None
    for record in existing:
        if normalize_invoice_no(record.invoice_no) == key:
            logger.debug(f"Invoice {key!r} matches existing record {record.id}")
            return record
    return None

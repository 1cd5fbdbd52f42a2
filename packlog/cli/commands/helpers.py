"""Shared helper functions for CLI commands."""

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from packlog.themes import resolve_color_theme
from packlog.types import Record
from packlog.utils import format_timestamp

_BOOL_WORDS = {"true": True, "yes": True, "1": True, "false": False, "no": False, "0": False}
_INT_FIELDS = {"boxCount", "box_count"}
_BOOL_FIELDS = {
    "isDelivery",
    "is_delivery",
    "hasCRN",
    "has_crn",
    "isEditedBill",
    "is_edited_bill",
    "isAdditionalBill",
    "is_additional_bill",
}


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")

    # Remove null bytes and control characters except newlines
    sanitized = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)

    return sanitized


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def parse_assignments(pairs: Optional[Iterable[str]]) -> Dict[str, Any]:
    """Turn ``key=value`` arguments into a patch dict.

    Box counts become ints and flag fields become bools; everything else
    stays a string.
    """
    patch: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        value = validate_input(value, key)
        if key in _INT_FIELDS:
            try:
                patch[key] = int(value)
            except ValueError:
                raise ValueError(f"{key} must be a whole number, got {value!r}")
        elif key in _BOOL_FIELDS:
            if value.strip().lower() not in _BOOL_WORDS:
                raise ValueError(f"{key} must be true or false, got {value!r}")
            patch[key] = _BOOL_WORDS[value.strip().lower()]
        else:
            patch[key] = value
    return patch


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on stdin. No answer means no."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def format_record(record: Record) -> str:
    """One-line summary of a record."""
    mark = "✓" if record.is_packed else " "
    flags = []
    if record.is_delivery:
        flags.append("delivery")
    if record.has_crn:
        flags.append("crn")
    if record.is_edited_bill:
        flags.append("edited")
    if record.is_additional_bill:
        flags.append("additional")

    line = f"[{mark}] {record.id[:8]}  {record.customer_name or '(no name)'}"
    if record.invoice_no:
        line += f"  #{record.invoice_no}"
    if record.box_count:
        line += f"  {record.box_count} box{'es' if record.box_count != 1 else ''}"
    if record.description:
        color = resolve_color_theme(record.color_theme, record.description)
        line += f"  <{record.description}:{color}>"
    if flags:
        line += f"  ({', '.join(flags)})"
    if record.is_packed:
        line += f"  packed {format_timestamp(record.packed_at)}"
    return line


def print_records(records: List[Record], as_json: bool = False, empty: str = "No bills.") -> None:
    if as_json:
        print_json([r.to_dict() for r in records])
        return
    if not records:
        print(empty)
        return
    for record in records:
        print(format_record(record))

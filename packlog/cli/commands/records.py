"""Bill commands for the packlog CLI: capture, listing, edits, batches."""

import logging
import sys
from typing import TYPE_CHECKING, List

from packlog.cli.commands.helpers import (
    confirm,
    parse_assignments,
    print_json,
    print_records,
    validate_input,
)
from packlog.core import BulkDelete, BulkPack, BulkStatus, GroupEdit
from packlog.protocols import RecordNotFoundError
from packlog.types import BatchResult, PackingStatus
from packlog.utils import shift_date

if TYPE_CHECKING:
    from packlog import PackLog

logger = logging.getLogger(__name__)


def resolve_ids(log: "PackLog", prefixes: List[str]) -> List[str]:
    """Expand the short ids printed by ``list`` into full record ids."""
    records = log.list_records()
    resolved: List[str] = []
    for prefix in prefixes:
        prefix = validate_input(prefix, "id", 100).strip()
        if not prefix:
            raise ValueError("Record id cannot be empty")
        matches = [r.id for r in records if r.id.startswith(prefix)]
        if not matches:
            raise RecordNotFoundError(prefix)
        if len(matches) > 1:
            raise ValueError(f"Id prefix {prefix!r} matches {len(matches)} bills; use more characters")
        resolved.append(matches[0])
    return resolved


def _report_batch(result: BatchResult, verb: str) -> None:
    if result.count == 0:
        print("No matching bills")
        return
    print(f"✓ {verb} {result.count} bill{'s' if result.count != 1 else ''}")
    for error in result.remote_errors:
        print(f"⚠️  Remote: {error}")


async def cmd_add(args, log: "PackLog"):
    """Record a captured bill."""
    fields = {
        "customerName": validate_input(args.customer or "", "customer", 200),
        "address": validate_input(args.address or "", "address", 500),
        "invoiceNo": validate_input(args.invoice or "", "invoice", 100),
        "billDate": validate_input(args.bill_date or "", "bill_date", 50),
    }
    if args.boxes is not None:
        fields["boxCount"] = args.boxes
    if args.description:
        fields["description"] = validate_input(args.description, "description", 200)

    record = await log.create_record(fields, entry_date=args.date, image_url=args.image)
    if record is None:
        print("Duplicate discarded, nothing saved")
        return
    if args.json:
        print_json(record.to_dict())
    else:
        print(f"✓ Added {record.id[:8]} for {record.customer_name or '(no name)'}")
        _report_push(log)


async def cmd_quick_add(args, log: "PackLog"):
    """Add a bill by hand, without duplicate checking."""
    record = await log.quick_add(
        validate_input(args.customer, "customer", 200),
        invoice_no=validate_input(args.invoice or "", "invoice", 100),
        box_count=args.boxes or 0,
        description=validate_input(args.description or "", "description", 200),
        entry_date=args.date,
    )
    if args.json:
        print_json(record.to_dict())
    else:
        print(f"✓ Added {record.id[:8]} for {record.customer_name}")
        _report_push(log)


def _report_push(log: "PackLog") -> None:
    push = log.last_push
    if push is not None and push.error:
        print(f"⚠️  Saved locally, remote copy pending: {push.error}")


def cmd_list(args, log: "PackLog"):
    """List one workday's bills."""
    day = args.date or log.current_date
    records = log.list_for_day(day)
    if not args.json:
        print(f"Bills for {day}:")
    print_records(records, as_json=args.json)


def cmd_backlog(args, log: "PackLog"):
    """List unpacked bills from earlier workdays."""
    before = args.date or log.current_date
    records = log.list_backlog(before)
    if not args.json:
        print(f"Pending before {before}:")
    print_records(records, as_json=args.json, empty="No backlog.")


def cmd_days(args, log: "PackLog"):
    """List workdays with their bills."""
    groups = log.day_groups()
    if args.json:
        print_json(
            [{"date": g.date, "records": [r.to_dict() for r in g.records]} for g in groups]
        )
        return
    if not groups:
        print("No bills.")
        return
    for group in groups:
        packed = sum(1 for r in group.records if r.is_packed)
        print(f"{group.date}  {packed}/{len(group.records)} packed")
        if args.verbose:
            for record in group.records:
                print(f"  {record.id[:8]}  {record.customer_name}")


def cmd_summary(args, log: "PackLog"):
    """Packing progress for one workday, and the backlog before it."""
    day = args.date or log.current_date
    summary = log.day_summary(day)
    backlog = log.list_backlog(day)
    if args.json:
        print_json(
            {
                "date": summary.date,
                "total": summary.total,
                "packed": summary.packed,
                "pending": summary.pending,
                "boxes": summary.boxes,
                "progress": summary.progress,
                "backlog": len(backlog),
            }
        )
        return
    print(f"Summary for {day}")
    print(f"  Bills:   {summary.total}")
    print(f"  Packed:  {summary.packed}")
    print(f"  Pending: {summary.pending}")
    print(f"  Boxes:   {summary.boxes}")
    print(f"  Done:    {summary.progress:.0%}")
    if backlog:
        oldest = backlog[0].entry_date
        print(f"  Backlog: {len(backlog)} pending since {oldest}")
    yesterday = log.day_summary(shift_date(day, -1))
    if yesterday.total:
        print(f"  Previous day: {yesterday.packed}/{yesterday.total} packed")


async def cmd_update(args, log: "PackLog"):
    """Edit fields of one bill."""
    (record_id,) = resolve_ids(log, [args.id])
    patch = parse_assignments(args.field)
    if not patch:
        print("Nothing to update; pass --field key=value")
        sys.exit(1)
    record = await log.update_record(record_id, patch)
    if args.json:
        print_json(record.to_dict())
    else:
        print(f"✓ Updated {record.id[:8]}")
        _report_push(log)


async def cmd_pack(args, log: "PackLog"):
    """Mark bills packed."""
    ids = resolve_ids(log, args.ids)
    result = await log.batch_apply(ids, BulkPack())
    _report_batch(result, "Packed")


async def cmd_unpack(args, log: "PackLog"):
    """Move bills back to pending."""
    ids = resolve_ids(log, args.ids)
    result = await log.batch_apply(ids, BulkStatus(PackingStatus.PENDING))
    _report_batch(result, "Unpacked")


async def cmd_group(args, log: "PackLog"):
    """Put bills under one group label and color."""
    ids = resolve_ids(log, args.ids)
    default_name, default_color = log.group_defaults(ids)
    name = args.name if args.name is not None else default_name
    color = args.color if args.color is not None else default_color
    result = await log.batch_apply(
        ids, GroupEdit(validate_input(name or "", "name", 200), color or None)
    )
    _report_batch(result, "Grouped")


async def cmd_delete(args, log: "PackLog"):
    """Delete bills locally and remotely."""
    ids = resolve_ids(log, args.ids)
    if not args.yes and not confirm(f"Delete {len(ids)} bill(s)?"):
        print("Cancelled")
        return
    if len(ids) == 1:
        if await log.delete_record(ids[0]):
            print(f"✓ Deleted {ids[0][:8]}")
            push = log.last_push
            if push is not None and push.error:
                print(f"⚠️  Remote delete pending: {push.error}")
        else:
            print("No matching bills")
        return
    result = await log.batch_apply(ids, BulkDelete())
    _report_batch(result, "Deleted")


def cmd_clear(args, log: "PackLog"):
    """Remove every local bill."""
    if not args.yes:
        print("✗ Refusing to clear without --yes")
        sys.exit(1)
    log.clear_all()
    print("✓ Local bills cleared (remote untouched)")

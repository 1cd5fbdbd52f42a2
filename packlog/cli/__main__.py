"""
packlog CLI - track bills from capture to packed.

Usage:
    packlog add --customer NAME [--invoice NO] [--address A] [--bill-date D] [--boxes N]
    packlog quick-add CUSTOMER [--invoice NO] [--boxes N] [--description D]
    packlog list [--date YYYY-MM-DD] [--json]
    packlog backlog [--date YYYY-MM-DD] [--json]
    packlog days [--json]
    packlog summary [--date YYYY-MM-DD] [--json]
    packlog update ID --field key=value [--field key=value]...
    packlog pack ID... | unpack ID...
    packlog group ID... [--name LABEL] [--color COLOR]
    packlog delete ID... [--yes]
    packlog remote connect URL KEY | remote disconnect | remote status
    packlog sync
    packlog clear --yes
"""

import argparse
import asyncio
import logging
import sys

from packlog import PackLog
from packlog.cli.commands import (
    cmd_add,
    cmd_backlog,
    cmd_clear,
    cmd_days,
    cmd_delete,
    cmd_group,
    cmd_list,
    cmd_pack,
    cmd_quick_add,
    cmd_remote,
    cmd_summary,
    cmd_sync,
    cmd_unpack,
    cmd_update,
)
from packlog.cli.commands.helpers import confirm
from packlog.config import get_settings
from packlog.logging_config import setup_packlog_logging
from packlog.protocols import PackLogError
from packlog.themes import COLOR_THEMES

logger = logging.getLogger(__name__)


def _ask_duplicate(existing, candidate) -> bool:
    print(
        f"⚠️  Invoice {candidate.get('invoiceNo', '')!r} is already recorded for "
        f"{existing.customer_name or '(no name)'} on {existing.entry_date} ({existing.id[:8]})"
    )
    return confirm("Save it anyway?")


def _allow_duplicate(existing, candidate) -> bool:
    return True


def _needs_startup(args) -> bool:
    if args.offline:
        return False
    # connect runs its own sync
    return not (args.command == "remote" and args.remote_action == "connect")


async def dispatch(args, log: PackLog):
    """Run one parsed command against ``log``."""
    if _needs_startup(args):
        await log.start()
        if log.last_sync is not None and log.last_sync.offline:
            print("⚠️  Remote unreachable, showing local bills")

    if args.command == "add":
        await cmd_add(args, log)
    elif args.command == "quick-add":
        await cmd_quick_add(args, log)
    elif args.command == "list":
        cmd_list(args, log)
    elif args.command == "backlog":
        cmd_backlog(args, log)
    elif args.command == "days":
        cmd_days(args, log)
    elif args.command == "summary":
        cmd_summary(args, log)
    elif args.command == "update":
        await cmd_update(args, log)
    elif args.command == "pack":
        await cmd_pack(args, log)
    elif args.command == "unpack":
        await cmd_unpack(args, log)
    elif args.command == "group":
        await cmd_group(args, log)
    elif args.command == "delete":
        await cmd_delete(args, log)
    elif args.command == "remote":
        await cmd_remote(args, log)
    elif args.command == "sync":
        await cmd_sync(args, log)
    elif args.command == "clear":
        cmd_clear(args, log)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="packlog",
        description="Offline-first bill packing tracker",
    )
    parser.add_argument("--offline", action="store_true",
                        help="Skip the startup sync with the remote")
    parser.add_argument("--allow-duplicate", dest="allow_duplicate", action="store_true",
                        help="Save duplicate invoices without asking")
    parser.add_argument("--log-level", dest="log_level", default=None,
                        help="Log level (default from PACKLOG_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # add
    p_add = subparsers.add_parser("add", help="Record a captured bill")
    p_add.add_argument("--customer", "-c", default="", help="Customer name")
    p_add.add_argument("--address", default="", help="Customer address")
    p_add.add_argument("--invoice", "-i", default="", help="Invoice number")
    p_add.add_argument("--bill-date", dest="bill_date", default="", help="Date printed on the bill")
    p_add.add_argument("--boxes", "-b", type=int, default=None, help="Box count")
    p_add.add_argument("--description", "-d", default="", help="Group label")
    p_add.add_argument("--image", default=None, help="Image reference to keep with the bill")
    p_add.add_argument("--date", default=None, help="Workday (YYYY-MM-DD, default today)")
    p_add.add_argument("--json", "-j", action="store_true")

    # quick-add
    p_quick = subparsers.add_parser("quick-add", help="Add a bill by hand")
    p_quick.add_argument("customer", help="Customer name")
    p_quick.add_argument("--invoice", "-i", default="", help="Invoice number")
    p_quick.add_argument("--boxes", "-b", type=int, default=0, help="Box count")
    p_quick.add_argument("--description", "-d", default="", help="Group label")
    p_quick.add_argument("--date", default=None, help="Workday (YYYY-MM-DD, default today)")
    p_quick.add_argument("--json", "-j", action="store_true")

    # listings
    p_list = subparsers.add_parser("list", help="List a workday's bills")
    p_list.add_argument("--date", default=None, help="Workday (default today)")
    p_list.add_argument("--json", "-j", action="store_true")

    p_backlog = subparsers.add_parser("backlog", help="Pending bills from earlier days")
    p_backlog.add_argument("--date", default=None, help="Show bills before this day (default today)")
    p_backlog.add_argument("--json", "-j", action="store_true")

    p_days = subparsers.add_parser("days", help="List workdays")
    p_days.add_argument("--verbose", "-v", action="store_true", help="Show bills under each day")
    p_days.add_argument("--json", "-j", action="store_true")

    p_summary = subparsers.add_parser("summary", help="Packing progress for a day")
    p_summary.add_argument("--date", default=None, help="Workday (default today)")
    p_summary.add_argument("--json", "-j", action="store_true")

    # edits
    p_update = subparsers.add_parser("update", help="Edit a bill")
    p_update.add_argument("id", help="Bill id (or unique prefix)")
    p_update.add_argument("--field", "-f", action="append",
                          help="key=value, e.g. boxCount=3 or customerName=Acme")
    p_update.add_argument("--json", "-j", action="store_true")

    p_pack = subparsers.add_parser("pack", help="Mark bills packed")
    p_pack.add_argument("ids", nargs="+", help="Bill ids (or unique prefixes)")

    p_unpack = subparsers.add_parser("unpack", help="Mark bills pending again")
    p_unpack.add_argument("ids", nargs="+", help="Bill ids (or unique prefixes)")

    p_group = subparsers.add_parser("group", help="Group bills under one label")
    p_group.add_argument("ids", nargs="+", help="Bill ids (or unique prefixes)")
    p_group.add_argument("--name", "-n", default=None,
                         help="Group label (default: the selection's current label)")
    p_group.add_argument("--color", choices=COLOR_THEMES, default=None, help="Color tag")

    p_delete = subparsers.add_parser("delete", help="Delete bills")
    p_delete.add_argument("ids", nargs="+", help="Bill ids (or unique prefixes)")
    p_delete.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    # remote
    p_remote = subparsers.add_parser("remote", help="Remote replica connection")
    remote_sub = p_remote.add_subparsers(dest="remote_action", required=True)
    remote_connect = remote_sub.add_parser("connect", help="Connect and sync")
    remote_connect.add_argument("url", help="Supabase project URL")
    remote_connect.add_argument("key", help="Supabase API key")
    remote_sub.add_parser("disconnect", help="Forget the remote; local bills stay")
    remote_status = remote_sub.add_parser("status", help="Show connection status")
    remote_status.add_argument("--json", "-j", action="store_true")

    p_sync = subparsers.add_parser("sync", help="Full sync with the remote")
    p_sync.add_argument("--json", "-j", action="store_true")

    p_clear = subparsers.add_parser("clear", help="Remove all local bills")
    p_clear.add_argument("--yes", action="store_true", help="Confirm")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_packlog_logging(args.log_level or settings.log_level, settings.resolved_data_dir())

    try:
        log = PackLog(
            settings=settings,
            confirm_duplicate=_allow_duplicate if args.allow_duplicate else _ask_duplicate,
        )
    except PackLogError as e:
        logger.error(f"Failed to open local store: {e}")
        print(f"✗ {e}")
        sys.exit(1)

    try:
        asyncio.run(dispatch(args, log))
    except PackLogError as e:
        logger.error(f"Command failed: {e}")
        print(f"✗ {e}")
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        print(f"✗ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Remote and sync commands for the packlog CLI."""

import logging
import sys
from typing import TYPE_CHECKING

from packlog.cli.commands.helpers import print_json, validate_input

if TYPE_CHECKING:
    from packlog import PackLog

logger = logging.getLogger(__name__)


async def cmd_remote(args, log: "PackLog"):
    """Handle remote subcommands: connect, disconnect, status."""
    if args.remote_action == "connect":
        endpoint = validate_input(args.url, "url", 500).strip()
        credential = validate_input(args.key, "key", 2000).strip()
        if not await log.connect_remote(endpoint, credential):
            print(f"✗ Could not connect to {endpoint}")
            sys.exit(1)
        print(f"✓ Connected to {endpoint}")
        _print_sync(log)

    elif args.remote_action == "disconnect":
        log.disconnect_remote()
        print("✓ Disconnected; local bills kept")

    elif args.remote_action == "status":
        status = {
            "connected": log.is_online,
            "endpoint": getattr(log.remote, "endpoint", None),
            "table": getattr(log.remote, "table", None),
            "pending_changes": log.pending_remote_changes,
            "records": len(log.list_records()),
        }
        if args.json:
            print_json(status)
            return
        if status["connected"]:
            print(f"Remote: connected to {status['endpoint']} (table {status['table']})")
        else:
            print("Remote: not connected")
        print(f"Local bills: {status['records']}")
        if status["pending_changes"]:
            print(f"⚠️  {status['pending_changes']} change(s) waiting for the next sync")


async def cmd_sync(args, log: "PackLog"):
    """Run a full reconciliation with the remote."""
    if not log.is_online:
        print("✗ Remote not connected. Run: packlog remote connect URL KEY")
        sys.exit(1)
    await log.sync_now()
    if args.json:
        result = log.last_sync
        print_json(
            {
                "success": result.success,
                "offline": result.offline,
                "pushed": result.pushed,
                "pulled": result.pulled,
                "deleted": result.deleted,
                "conflicts": result.conflict_count,
                "errors": result.errors,
                "records": len(result.records),
            }
        )
        return
    _print_sync(log)


def _print_sync(log: "PackLog") -> None:
    result = log.last_sync
    if result is None:
        return
    if result.offline:
        print("⚠️  Remote unreachable, working offline")
        for error in result.errors:
            print(f"  {error}")
        return
    print(
        f"✓ Synced {len(result.records)} bills "
        f"(pushed {result.pushed}, pulled {result.pulled}, deleted {result.deleted})"
    )
    if result.conflicts:
        print(f"⚠️  {result.conflict_count} conflicts resolved by latest edit")
    for error in result.errors:
        print(f"⚠️  {error}")

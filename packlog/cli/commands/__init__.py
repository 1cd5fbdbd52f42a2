"""CLI command modules for packlog.

Each module contains related command handlers used by __main__.py.
"""

from packlog.cli.commands.records import (
    cmd_add,
    cmd_backlog,
    cmd_clear,
    cmd_days,
    cmd_delete,
    cmd_group,
    cmd_list,
    cmd_pack,
    cmd_quick_add,
    cmd_summary,
    cmd_unpack,
    cmd_update,
)
from packlog.cli.commands.sync import cmd_remote, cmd_sync

__all__ = [
    "cmd_add",
    "cmd_backlog",
    "cmd_clear",
    "cmd_days",
    "cmd_delete",
    "cmd_group",
    "cmd_list",
    "cmd_pack",
    "cmd_quick_add",
    "cmd_remote",
    "cmd_summary",
    "cmd_sync",
    "cmd_unpack",
    "cmd_update",
]

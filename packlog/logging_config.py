"""
Logging setup for packlog.

Two outputs under ``<home>/logs``:

- ``local-YYYY-MM-DD.log``: the ``packlog`` logger tree (every module logger).
- ``record-events-YYYY-MM-DD.log``: one line per record save, delete, batch
  and sync pass, for reconstructing what happened on a device.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from packlog.utils import get_packlog_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Data directory chosen by the last setup call; None means the environment default.
_data_dir: Optional[Path] = None


def _log_dir() -> Path:
    log_dir = (_data_dir or get_packlog_home()) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_packlog_logging(
    level: str = "INFO", data_dir: Optional[Path] = None
) -> logging.Logger:
    """Configure the ``packlog`` logger.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
            DEBUG also echoes to the console.
        data_dir: Directory holding ``logs/``, used by the event log too.
            Defaults to the packlog home from the environment.

    Returns:
        The ``packlog`` logger. Calling again does not add handlers.
    """
    level_name = (level or "INFO").upper()
    if level_name not in _VALID_LEVELS:
        level_name = "INFO"
    numeric_level = getattr(logging, level_name)

    global _data_dir
    if data_dir is not None:
        _data_dir = Path(data_dir).expanduser()

    logger = logging.getLogger("packlog")
    logger.setLevel(numeric_level)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_file = _log_dir() / f"local-{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    if numeric_level == logging.DEBUG and not has_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console)

    return logger


def log_record_event(event_type: str, details: str, device: Optional[str] = None) -> None:
    """Append one line to the record event log.

    The event log is an audit aid; failing to write it never fails the
    operation being logged.
    """
    timestamp = datetime.now().isoformat(timespec="seconds")
    try:
        log_file = _log_dir() / f"record-events-{datetime.now().strftime('%Y-%m-%d')}.log"
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(f"{timestamp} | {event_type} | device={device or 'local'} | {details}\n")
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not write record event log: {e}")


def log_save(record_id: str, operation: str, invoice_no: str = "") -> None:
    log_record_event("save", f"op={operation}, id={record_id[:8]}, invoice={invoice_no!r}")


def log_delete(record_ids, tracked: bool) -> None:
    ids = ",".join(rid[:8] for rid in record_ids)
    log_record_event("delete", f"ids={ids}, tombstoned={tracked}")


def log_batch(operation: str, count: int, stamp: Optional[int]) -> None:
    log_record_event("batch", f"op={operation}, count={count}, stamp={stamp}")


def log_sync(pushed: int, pulled: int, deleted: int, conflicts: int, errors: int, offline: bool):
    log_record_event(
        "sync",
        f"pushed={pushed}, pulled={pulled}, deleted={deleted}, "
        f"conflicts={conflicts}, errors={errors}, offline={offline}",
    )

"""Tests for packlog.logging_config module."""

import logging

import pytest

from packlog.logging_config import (
    log_batch,
    log_delete,
    log_record_event,
    log_save,
    log_sync,
    setup_packlog_logging,
)


@pytest.fixture(autouse=True)
def clean_packlog_logger():
    """Remove all handlers from the packlog logger before/after each test."""
    logger = logging.getLogger("packlog")
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    """Set PACKLOG_DATA_DIR so logs go to a temp directory."""
    monkeypatch.setenv("PACKLOG_DATA_DIR", str(tmp_path))
    return tmp_path / "logs"


def _stream_handlers(logger):
    return [
        h
        for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def _event_log(log_dir):
    event_files = list(log_dir.glob("record-events-*.log"))
    assert len(event_files) == 1
    return event_files[0].read_text()


class TestSetupPacklogLogging:
    """Tests for setup_packlog_logging."""

    def test_returns_package_logger(self, log_dir):
        logger = setup_packlog_logging()
        assert isinstance(logger, logging.Logger)
        assert logger.name == "packlog"

    def test_creates_log_directory(self, log_dir):
        assert not log_dir.exists()
        setup_packlog_logging()
        assert log_dir.exists()

    def test_log_file_named_with_date(self, log_dir):
        setup_packlog_logging()
        log_files = list(log_dir.glob("local-*.log"))
        assert len(log_files) == 1

    def test_default_level_info(self, log_dir):
        assert setup_packlog_logging().level == logging.INFO

    def test_level_case_insensitive(self, log_dir):
        assert setup_packlog_logging(level="warning").level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self, log_dir):
        assert setup_packlog_logging(level="LOUD").level == logging.INFO

    def test_debug_adds_console_handler(self, log_dir):
        logger = setup_packlog_logging(level="DEBUG")
        assert len(_stream_handlers(logger)) == 1

    def test_info_no_console_handler(self, log_dir):
        logger = setup_packlog_logging(level="INFO")
        assert _stream_handlers(logger) == []

    def test_no_duplicate_handlers(self, log_dir):
        first = setup_packlog_logging(level="DEBUG")
        second = setup_packlog_logging(level="DEBUG")
        assert first is second
        file_handlers = [h for h in first.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert len(_stream_handlers(first)) == 1

    def test_module_loggers_write_to_file(self, log_dir):
        logger = setup_packlog_logging(level="INFO")
        logging.getLogger("packlog.storage.sync_engine").info("sync finished for test")
        for h in logger.handlers:
            h.flush()
        content = next(log_dir.glob("local-*.log")).read_text()
        assert " | INFO | packlog.storage.sync_engine | sync finished for test" in content

    def test_explicit_data_dir_wins_over_environment(self, log_dir, tmp_path):
        chosen = tmp_path / "configured"
        setup_packlog_logging(data_dir=chosen)
        log_record_event("save", "routed")

        assert len(list((chosen / "logs").glob("local-*.log"))) == 1
        assert "routed" in _event_log(chosen / "logs")
        assert not log_dir.exists()


class TestLogRecordEvent:
    def test_event_line_format(self, log_dir):
        log_record_event("save", "op=create, id=abc", device="tablet-1")
        assert "save | device=tablet-1 | op=create, id=abc" in _event_log(log_dir)

    def test_default_device(self, log_dir):
        log_record_event("sync", "details")
        assert "device=local" in _event_log(log_dir)

    def test_appends(self, log_dir):
        log_record_event("save", "first")
        log_record_event("delete", "second")
        lines = [line for line in _event_log(log_dir).splitlines() if line]
        assert len(lines) == 2
        assert "first" in lines[0]
        assert "second" in lines[1]

    def test_unwritable_log_does_not_raise(self, tmp_path, monkeypatch):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        monkeypatch.setenv("PACKLOG_DATA_DIR", str(blocker))
        log_record_event("save", "lost")


class TestConvenienceFunctions:
    def test_log_save_truncates_id(self, log_dir):
        log_save("abcdef1234567890", "create", "INV-1")
        content = _event_log(log_dir)
        assert "op=create, id=abcdef12," in content
        assert "invoice='INV-1'" in content

    def test_log_delete(self, log_dir):
        log_delete(["aaaaaaaa1111", "bbbbbbbb2222"], tracked=True)
        assert "ids=aaaaaaaa,bbbbbbbb, tombstoned=True" in _event_log(log_dir)

    def test_log_batch(self, log_dir):
        log_batch("bulk_pack", 3, 1234)
        assert "op=bulk_pack, count=3, stamp=1234" in _event_log(log_dir)

    def test_log_sync(self, log_dir):
        log_sync(2, 1, 0, 1, 0, False)
        content = _event_log(log_dir)
        assert "pushed=2, pulled=1, deleted=0, conflicts=1, errors=0, offline=False" in content

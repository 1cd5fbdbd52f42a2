"""Tests for settings and utility helpers."""

from pathlib import Path

import pytest

from packlog.config import Settings, get_settings
from packlog.utils import (
    MonotonicClock,
    format_timestamp,
    generate_id,
    get_packlog_home,
    shift_date,
    validate_entry_date,
)


class TestSettings:
    def test_defaults(self, packlog_home):
        settings = Settings()
        assert settings.remote_table == "bills"
        assert settings.remote_page_size == 1000
        assert settings.auto_sync is True
        assert settings.remote_url is None
        assert settings.resolved_db_path() == packlog_home / "packlog.db"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PACKLOG_REMOTE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("PACKLOG_REMOTE_KEY", "anon")
        monkeypatch.setenv("PACKLOG_AUTO_SYNC", "false")
        monkeypatch.setenv("PACKLOG_DB_PATH", str(tmp_path / "other.db"))
        settings = Settings()
        assert settings.remote_url == "https://abc.supabase.co"
        assert settings.remote_key == "anon"
        assert settings.auto_sync is False
        assert settings.resolved_db_path() == tmp_path / "other.db"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestHome:
    def test_env_override(self, packlog_home):
        assert get_packlog_home() == packlog_home

    def test_default_home(self, monkeypatch):
        monkeypatch.delenv("PACKLOG_DATA_DIR")
        assert get_packlog_home() == Path.home() / ".packlog"


class TestDates:
    def test_valid_entry_date(self):
        assert validate_entry_date("2024-05-01") == "2024-05-01"

    @pytest.mark.parametrize("value", ["2024-13-01", "01/05/2024", "", None, "yesterday"])
    def test_invalid_entry_date(self, value):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            validate_entry_date(value)

    def test_shift_date_crosses_months(self):
        assert shift_date("2024-03-01", -1) == "2024-02-29"

    def test_format_timestamp(self):
        assert format_timestamp(None) == ""
        assert format_timestamp(0)[:2] in ("19", "20")


class TestMonotonicClock:
    def test_strictly_increasing_with_frozen_wall_clock(self):
        clock = MonotonicClock(lambda: 5_000)
        stamps = [clock.tick() for _ in range(5)]
        assert stamps == [5_000, 5_001, 5_002, 5_003, 5_004]

    def test_survives_clock_stepping_back(self):
        times = iter([1_000, 900, 950])
        clock = MonotonicClock(lambda: next(times))
        assert clock.tick() == 1_000
        assert clock.tick() == 1_001
        assert clock.tick() == 1_002

    def test_observe_moves_floor(self):
        clock = MonotonicClock(lambda: 100)
        clock.observe(10_000)
        assert clock.tick() == 10_001
        clock.observe(5)
        assert clock.tick() == 10_002


def test_generate_id_unique():
    assert len({generate_id() for _ in range(100)}) == 100

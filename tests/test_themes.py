"""Tests for group color tags."""

import pytest

from packlog.themes import (
    COLOR_THEMES,
    DEFAULT_THEME,
    _label_hash,
    resolve_color_theme,
    validate_color_theme,
)


def test_explicit_color_wins():
    assert resolve_color_theme("teal", "Morning run") == "teal"


def test_no_label_uses_default():
    assert resolve_color_theme(None, "") == DEFAULT_THEME
    assert resolve_color_theme(None, "   ") == DEFAULT_THEME


def test_unknown_explicit_color_falls_back_to_label():
    assert resolve_color_theme("mauve", "Shop A") == resolve_color_theme(None, "Shop A")


def test_label_color_is_stable():
    first = resolve_color_theme(None, "North route")
    assert first in COLOR_THEMES
    assert resolve_color_theme(None, "North route") == first


def test_label_hash_matches_int32_arithmetic():
    # "a" -> 97; "ab" -> 98 + (97 * 31) = 3105
    assert _label_hash("a") == 97
    assert _label_hash("ab") == 3105
    assert resolve_color_theme(None, "x" * 50) in COLOR_THEMES


def test_label_hash_known_index():
    # sum over "AB": 66 + 65 * 31 = 2081; 2081 % 10 = 1 -> "red"
    assert resolve_color_theme(None, "AB") == "red"


class TestValidateColorTheme:
    def test_blank_is_none(self):
        assert validate_color_theme("") is None
        assert validate_color_theme(None) is None

    def test_known(self):
        assert validate_color_theme("blue") == "blue"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown color"):
            validate_color_theme("chartreuse")


def test_label_hash_uses_utf16_code_units():
    # U+1F4E6 is the pair 0xD83D 0xDCE6: 0xDCE6 + 0xD83D * 31 = 1772617
    assert _label_hash("\U0001F4E6") == 1772617
    assert resolve_color_theme(None, "\U0001F4E6") == "indigo"

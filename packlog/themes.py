"""Color tags for bill groups.

A record either names its color explicitly (``color_theme``) or gets one
derived from its group label, so every bill of the same shop lands on the
same color on every device without storing it.
"""

from typing import Optional

COLOR_THEMES = (
    "slate",
    "red",
    "orange",
    "amber",
    "green",
    "teal",
    "blue",
    "indigo",
    "purple",
    "pink",
)

DEFAULT_THEME = COLOR_THEMES[0]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _label_hash(label: str) -> int:
    # h = c + ((h << 5) - h) over UTF-16 code units with the shift done in
    # int32, matching the web client so derived colors agree across devices.
    data = label.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = unit + (_to_int32(_to_int32(h) << 5) - h)
    return h


def resolve_color_theme(color_theme: Optional[str], description: Optional[str]) -> str:
    """Pick the display color for a record.

    An explicit known color wins; otherwise a non-blank group label hashes
    into the palette; otherwise the default.
    """
    if color_theme and color_theme in COLOR_THEMES:
        return color_theme
    if description and description.strip():
        return COLOR_THEMES[abs(_label_hash(description)) % len(COLOR_THEMES)]
    return DEFAULT_THEME


def validate_color_theme(color_theme: Optional[str]) -> Optional[str]:
    """Return ``color_theme`` if known, ``None`` for blank; reject the rest."""
    if not color_theme:
        return None
    if color_theme not in COLOR_THEMES:
        raise ValueError(
            f"Unknown color {color_theme!r}; expected one of {', '.join(COLOR_THEMES)}"
        )
    return color_theme

"""Color conversion and palette classification.

AIDEV-NOTE: Nothing in here raises on malformed input. Bad hex strings
surface as None from hex_to_rgb(), infinity from color_distance() and
'?' from classify(), so one bad palette entry never breaks a chart.
"""

import math
import re
from typing import Sequence

from knitgrid.models import TEXT_COLOR_THRESHOLD, ColorEntry

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")

UNKNOWN_CHAR = "?"
BLACK = "#000000"
WHITE = "#ffffff"

# WCAG 2.0 relative luminance
_LINEAR_THRESHOLD = 0.03928
_DARK_SCALE = 12.92
_LIGHT_BASE = 0.055
_LIGHT_SCALE = 1.055
_LIGHT_EXPONENT = 2.4
_WEIGHTS = (0.2126, 0.7152, 0.0722)


def rgb_to_hex(r: float, g: float, b: float) -> str:
    """Convert RGB channels (0-255) to a lowercase "#rrggbb" string."""

    def channel(c: float) -> str:
        return format(max(0, min(255, int(round(c)))), "02x")

    return f"#{channel(r)}{channel(g)}{channel(b)}"


def hex_to_rgb(hex_color: "str | None") -> "tuple[int, int, int] | None":
    """Parse a 6-digit hex color, with or without a leading '#'.

    Returns:
        (r, g, b) tuple, or None for anything else (3-digit shorthand included)
    """
    if not isinstance(hex_color, str):
        return None
    match = _HEX_RE.match(hex_color)
    if not match:
        return None
    value = int(match.group(1), 16)
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def color_distance(hex1: "str | None", hex2: "str | None") -> float:
    """Euclidean distance in RGB space, or infinity if either color is invalid.

    The maximum between two valid colors is ~441.67 (black to white).
    """
    rgb1 = hex_to_rgb(hex1)
    rgb2 = hex_to_rgb(hex2)
    if rgb1 is None or rgb2 is None:
        return math.inf
    return math.sqrt(sum((a - b) ** 2 for a, b in zip(rgb1, rgb2)))


def _to_linear(channel: int) -> float:
    srgb = channel / 255.0
    if srgb <= _LINEAR_THRESHOLD:
        return srgb / _DARK_SCALE
    return ((srgb + _LIGHT_BASE) / _LIGHT_SCALE) ** _LIGHT_EXPONENT


def get_luminance(hex_color: "str | None") -> float:
    """WCAG relative luminance, 0 (black) to 1 (white). 0 for invalid input."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return 0.0
    return sum(w * _to_linear(c) for w, c in zip(_WEIGHTS, rgb))


def get_contrast_text_color(bg_hex: "str | None") -> str:
    """Black text on light backgrounds, white text on dark ones."""
    if get_luminance(bg_hex) > TEXT_COLOR_THRESHOLD:
        return BLACK
    return WHITE


def find_closest_palette_entry(
    hex_color: "str | None", palette: "Sequence[ColorEntry]"
) -> "ColorEntry | None":
    """Nearest palette entry by RGB distance.

    Ties go to the earliest entry in the palette. If every distance is
    infinite (invalid color or invalid palette) the first entry is returned.
    Returns None only for an empty palette.
    """
    if not palette:
        return None

    closest = palette[0]
    min_dist = color_distance(hex_color, closest.hex)
    for entry in palette[1:]:
        dist = color_distance(hex_color, entry.hex)
        if dist < min_dist:
            min_dist = dist
            closest = entry
    return closest


def classify(hex_color: "str | None", palette: "Sequence[ColorEntry]") -> str:
    """Chart character for a sampled color, '?' when the palette is empty."""
    entry = find_closest_palette_entry(hex_color, palette)
    if entry is None:
        return UNKNOWN_CHAR
    return entry.char


def with_text_colors(palette: "Sequence[ColorEntry]") -> "list[ColorEntry]":
    """Copy of the palette with contrasting label colors filled in."""
    return [
        ColorEntry(hex=e.hex, char=e.char, text_color=get_contrast_text_color(e.hex))
        for e in palette
    ]

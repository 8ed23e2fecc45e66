"""Per-cell color sampling from the source photograph.

AIDEV-NOTE: Pixel data is converted to a numpy array once per full-grid
recompute, then every cell reads a small window from that array. Cells whose
window is empty come back as None ("unknown"), never as black.
"""

import math
from typing import TYPE_CHECKING, Sequence

import numpy as np
from PIL import Image

from knitgrid.models import SAMPLE_SIZE

from .colors import rgb_to_hex
from .geometry import blend, cell_center, quad_corners

if TYPE_CHECKING:
    from knitgrid.models import GridSpec, Point


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def image_to_array(image: "Image.Image | np.ndarray") -> np.ndarray:
    """RGB pixel array (height, width, 3) for a PIL image or an existing array."""
    if isinstance(image, Image.Image):
        if image.mode != "RGB":
            image = image.convert("RGB")
        return np.asarray(image)
    return np.asarray(image)


def sample_average(
    pixels: np.ndarray,
    x: float,
    y: float,
    size: int = SAMPLE_SIZE,
) -> "tuple[int, int, int] | None":
    """Average RGB color of a square window around a pixel position.

    Args:
        pixels: Image array of shape (height, width, channels >= 3)
        x: Window center X in pixels
        y: Window center Y in pixels
        size: Window edge length in pixels

    Returns:
        Rounded (r, g, b) average, or None if the window holds no pixels

    AIDEV-NOTE: The window start is clamped into the image and its extent is
    cut at the far edge, so it never reads outside the image. Channels are
    summed over the window and rounded once at the end.
    """
    if pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        return None

    height, width = pixels.shape[:2]
    half = max(1, size // 2)
    sx = min(max(0, _round_half_up(x) - half), width - 1)
    sy = min(max(0, _round_half_up(y) - half), height - 1)
    w = min(size, width - sx)
    h = min(size, height - sy)

    window = pixels[sy : sy + h, sx : sx + w, :3]
    count = window.shape[0] * window.shape[1]
    if count == 0:
        return None

    totals = window.reshape(-1, 3).astype(np.int64).sum(axis=0)
    return tuple(_round_half_up(total / count) for total in totals)


def extract_cell_colors(
    image: "Image.Image | np.ndarray",
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    sample_size: int = SAMPLE_SIZE,
) -> "list[str | None]":
    """Sample one averaged hex color per grid cell, row-major.

    Args:
        image: Source photograph
        points: Normalized crop quadrilateral (TL, TR, BR, BL)
        grid: Rows and columns laid over the quadrilateral
        sample_size: Sampling window edge length in pixels

    Returns:
        One entry per cell (None where sampling failed), or an empty list
        when the quadrilateral or grid is degenerate
    """
    corners = quad_corners(points)
    if corners is None or not grid.is_valid:
        return []

    pixels = image_to_array(image)
    height, width = pixels.shape[:2] if pixels.ndim >= 2 else (0, 0)

    colors: "list[str | None]" = []
    for row in range(grid.rows):
        for col in range(grid.cols):
            u, v = cell_center(row, col, grid)
            pt = blend(u, v, *corners)
            rgb = sample_average(pixels, pt.x * width, pt.y * height, sample_size)
            colors.append(rgb_to_hex(*rgb) if rgb is not None else None)
    return colors

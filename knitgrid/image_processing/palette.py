"""Palette suggestion from sampled cell colors.

AIDEV-NOTE: Two strategies, selected by name:
"threshold" keeps cell colors in first-seen order, dropping any color closer
than the threshold to one already kept; "kmeans" clusters the cell colors
with scikit-learn. Both return ColorEntry lists with letters assigned.
"""

import string
from typing import Iterable, Sequence

import numpy as np
from sklearn.cluster import KMeans

from knitgrid.models import (
    DEFAULT_DEDUP_THRESHOLD,
    MAX_COLORS,
    MAX_DEDUP_THRESHOLD,
    ColorEntry,
)

from .colors import color_distance, get_contrast_text_color, hex_to_rgb, rgb_to_hex

# Letters first, then digits, then lowercase for large palettes
LABEL_CHARS = string.ascii_uppercase + string.digits + string.ascii_lowercase


def dedupe_colors(
    hex_colors: "Iterable[str | None]",
    threshold: float = DEFAULT_DEDUP_THRESHOLD,
    max_colors: int = MAX_COLORS,
) -> "list[str]":
    """Distinct colors in first-seen order.

    A color is kept only if it is farther than `threshold` from every color
    already kept. Unknown (None) and malformed colors are skipped.
    """
    threshold = max(0.0, min(MAX_DEDUP_THRESHOLD, float(threshold)))
    kept: "list[str]" = []
    for hex_color in hex_colors:
        if len(kept) >= max_colors:
            break
        rgb = hex_to_rgb(hex_color)
        if rgb is None:
            continue
        normalized = rgb_to_hex(*rgb)
        if all(color_distance(normalized, k) > threshold for k in kept):
            kept.append(normalized)
    return kept


def kmeans_colors(hex_colors: "Iterable[str | None]", num_colors: int) -> "list[str]":
    """Cluster cell colors into at most `num_colors` representative colors."""
    rgb = [c for c in (hex_to_rgb(h) for h in hex_colors) if c is not None]
    if not rgb or num_colors <= 0:
        return []

    pixels = np.array(rgb, dtype=np.float64)
    n_clusters = min(num_colors, len(np.unique(pixels, axis=0)))

    kmeans = KMeans(n_clusters=n_clusters, random_state=42, n_init=10)
    kmeans.fit(pixels)

    # Order clusters by size so the dominant color gets the first letter
    counts = np.bincount(kmeans.labels_, minlength=n_clusters)
    order = np.argsort(-counts, kind="stable")
    centers = kmeans.cluster_centers_[order]
    return [rgb_to_hex(*center) for center in centers]


def assign_chars(
    hex_colors: "Sequence[str]", existing: "Sequence[ColorEntry]" = ()
) -> "list[ColorEntry]":
    """Tag colors with the next unused label characters."""
    used = {e.char for e in existing}
    free = (c for c in LABEL_CHARS if c not in used)
    entries = []
    for hex_color, char in zip(hex_colors, free):
        entries.append(
            ColorEntry(
                hex=hex_color,
                char=char,
                text_color=get_contrast_text_color(hex_color),
            )
        )
    return entries


def suggest_palette(
    hex_colors: "Iterable[str | None]",
    method: str = "threshold",
    threshold: float = DEFAULT_DEDUP_THRESHOLD,
    num_colors: int = 8,
    existing: "Sequence[ColorEntry]" = (),
) -> "list[ColorEntry]":
    """Suggest palette entries for the sampled cell colors.

    Args:
        hex_colors: Sampled cell colors (None entries are ignored)
        method: "threshold" or "kmeans"
        threshold: Minimum RGB distance between kept colors ("threshold")
        num_colors: Cluster count ("kmeans")
        existing: Current palette; its colors and letters are not repeated

    Returns:
        New ColorEntry list, not including the existing entries
    """
    colors = list(hex_colors)
    room = max(0, MAX_COLORS - len(existing))

    if method == "kmeans":
        candidates = kmeans_colors(colors, min(num_colors, room))
    else:
        candidates = dedupe_colors(colors, threshold, max_colors=MAX_COLORS)

    # Drop candidates already covered by the existing palette
    fresh = [
        c
        for c in candidates
        if all(color_distance(c, e.hex) > threshold for e in existing)
    ][:room]
    return assign_chars(fresh, existing)

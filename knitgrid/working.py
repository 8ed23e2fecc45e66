"""Working-row conventions and run-length pattern encoding.

A knitter works the chart one row at a time. Working row 0 is the first row
worked, which is the bottom grid row when the project starts from the bottom.
Stitch types alternate row by row, and each stitch type reads in its own
configured direction.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Sequence

from knitgrid.image_processing.colors import UNKNOWN_CHAR, classify
from knitgrid.models import Direction, StitchType

if TYPE_CHECKING:
    from knitgrid.models import ColorEntry, GridSpec, WorkingState


@dataclass
class PatternRow:
    """One encoded chart row, in working order."""

    working_row: int
    display_row: int  # 1-indexed, shown to the user
    grid_row: int
    stitch: StitchType
    direction: Direction
    rle: str  # e.g. "4W 4B"


def get_stitch_type(working_row: int, start_stitch: StitchType) -> StitchType:
    """Stitch type of a working row: row 0 uses start_stitch, then alternates."""
    if working_row % 2 == 0:
        return start_stitch
    if start_stitch is StitchType.KNIT:
        return StitchType.PURL
    return StitchType.KNIT


def get_row_direction(
    stitch: StitchType, knit_direction: Direction, purl_direction: Direction
) -> Direction:
    """Reading direction for a stitch type."""
    if stitch is StitchType.KNIT:
        return knit_direction
    return purl_direction


def row_direction_for(working_row: int, working: "WorkingState") -> Direction:
    """Reading direction of a working row under a project's conventions."""
    stitch = get_stitch_type(working_row, working.start_stitch)
    return get_row_direction(stitch, working.knit_direction, working.purl_direction)


def get_grid_row_from_working(
    working_row: int, start_from_bottom: bool, total_rows: int
) -> int:
    """Grid row index for a working row."""
    if start_from_bottom:
        return total_rows - 1 - working_row
    return working_row


def get_working_row_from_grid(
    grid_row: int, start_from_bottom: bool, total_rows: int
) -> int:
    """Working row for a grid row index (same formula, it is its own inverse)."""
    if start_from_bottom:
        return total_rows - 1 - grid_row
    return grid_row


def get_display_row_number(working_row: int) -> int:
    """1-indexed row number shown to the user."""
    return working_row + 1


def run_length_encode(chars: "Sequence[str]") -> "list[tuple[int, str]]":
    """Collapse consecutive equal characters into (count, char) runs."""
    runs: "list[tuple[int, str]]" = []
    for char in chars:
        if runs and runs[-1][1] == char:
            runs[-1] = (runs[-1][0] + 1, char)
        else:
            runs.append((1, char))
    return runs


def format_runs(runs: "Sequence[tuple[int, str]]") -> str:
    """Format runs as "4W 4B"."""
    return " ".join(f"{count}{char}" for count, char in runs)


def row_chars(
    cell_colors: "Sequence[str | None]",
    grid_row: int,
    cols: int,
    palette: "Sequence[ColorEntry]",
    direction: Direction,
    corrections: "Mapping[int, str] | None" = None,
) -> "list[tuple[int, str]]":
    """Resolved (cell index, char) pairs of one grid row, in reading order.

    Corrections win over color matching, and a cell whose sampling failed
    reads as '?'. Returns [] for an empty palette, non-positive cols, or a
    row beyond the sampled data.
    """
    if cols <= 0 or not palette:
        return []

    row_start = grid_row * cols
    if row_start < 0 or row_start >= len(cell_colors):
        return []

    row_end = min(row_start + cols, len(cell_colors))
    indices = list(range(row_start, row_end))
    if direction is Direction.RTL:
        indices.reverse()

    resolved = []
    for idx in indices:
        if corrections and idx in corrections:
            resolved.append((idx, corrections[idx]))
        elif cell_colors[idx] is None:
            resolved.append((idx, UNKNOWN_CHAR))
        else:
            resolved.append((idx, classify(cell_colors[idx], palette)))
    return resolved


def encode_row(
    cell_colors: "Sequence[str | None]",
    grid_row: int,
    cols: int,
    palette: "Sequence[ColorEntry]",
    direction: Direction,
    corrections: "Mapping[int, str] | None" = None,
) -> str:
    """Run-length description of one grid row, e.g. "4W 4B".

    Args:
        cell_colors: Flat row-major list of sampled cell colors
        grid_row: Grid row index (0 = top)
        cols: Number of grid columns
        palette: Palette used for nearest-color matching
        direction: LTR or RTL reading order
        corrections: Optional cell index -> char overrides

    Returns:
        Space separated "{count}{char}" runs, or "" when nothing can be encoded
    """
    resolved = row_chars(cell_colors, grid_row, cols, palette, direction, corrections)
    return format_runs(run_length_encode([char for _, char in resolved]))


def encode_pattern(
    cell_colors: "Sequence[str | None]",
    grid: "GridSpec",
    palette: "Sequence[ColorEntry]",
    working: "WorkingState",
    corrections: "Mapping[int, str] | None" = None,
) -> "list[PatternRow]":
    """Encode every row of the chart in working order."""
    if not grid.is_valid:
        return []

    rows = []
    for working_row in range(grid.rows):
        grid_row = get_grid_row_from_working(
            working_row, working.start_from_bottom, grid.rows
        )
        stitch = get_stitch_type(working_row, working.start_stitch)
        direction = get_row_direction(
            stitch, working.knit_direction, working.purl_direction
        )
        rows.append(
            PatternRow(
                working_row=working_row,
                display_row=get_display_row_number(working_row),
                grid_row=grid_row,
                stitch=stitch,
                direction=direction,
                rle=encode_row(
                    cell_colors, grid_row, grid.cols, palette, direction, corrections
                ),
            )
        )
    return rows

"""Chart export as plain text instructions and as an SVG chart."""

from typing import TYPE_CHECKING, Sequence

import svg

from knitgrid import working

from .colors import get_contrast_text_color, hex_to_rgb

if TYPE_CHECKING:
    from knitgrid.models import ProjectState

    from .processor import PatternResult

CELL_SIZE = 20  # SVG user units per chart cell
ROW_NUMBER_WIDTH = 40


def chart_to_text(rows: "Sequence[working.PatternRow]") -> str:
    """Row-by-row instructions, one line per working row.

    Example line: "Row 1 (K, RTL): 4W 4B"
    """
    return "\n".join(
        f"Row {row.display_row} ({row.stitch.value}, {row.direction.value}): {row.rle}"
        for row in rows
    )


def chart_to_svg(project: "ProjectState", result: "PatternResult") -> str:
    """Draw the chart as a grid of colored, lettered squares.

    Row numbers follow the working order, so the first worked row is
    numbered 1 even when it is the bottom row of the grid.
    """
    grid = project.grid
    if grid is None or not result.labels:
        return svg.SVG(viewBox=svg.ViewBoxSpec(0, 0, 100, 100), elements=[]).as_str()

    elements: "list[svg.Element]" = []
    for index, label in enumerate(result.labels):
        row, col = divmod(index, grid.cols)
        if row >= grid.rows:
            break
        x = ROW_NUMBER_WIDTH + col * CELL_SIZE
        y = row * CELL_SIZE
        if label is not None and hex_to_rgb(label.hex) is None:
            label = None
        fill = label.hex if label is not None else "#ffffff"
        elements.append(
            svg.Rect(
                x=x,
                y=y,
                width=CELL_SIZE,
                height=CELL_SIZE,
                fill=fill,
                stroke="#000000",
                stroke_width=0.5,
            )
        )
        if label is not None:
            elements.append(
                svg.Text(
                    x=x + CELL_SIZE / 2,
                    y=y + CELL_SIZE / 2,
                    text=label.char,
                    fill=label.text_color or get_contrast_text_color(label.hex),
                    font_size=CELL_SIZE * 0.6,
                    text_anchor="middle",
                    dominant_baseline="central",
                )
            )

    for grid_row in range(grid.rows):
        working_row = working.get_working_row_from_grid(
            grid_row, project.working.start_from_bottom, grid.rows
        )
        elements.append(
            svg.Text(
                x=ROW_NUMBER_WIDTH - 6,
                y=grid_row * CELL_SIZE + CELL_SIZE / 2,
                text=str(working.get_display_row_number(working_row)),
                fill="#000000",
                font_size=CELL_SIZE * 0.5,
                text_anchor="end",
                dominant_baseline="central",
            )
        )

    return svg.SVG(
        viewBox=svg.ViewBoxSpec(
            0, 0, ROW_NUMBER_WIDTH + grid.cols * CELL_SIZE, grid.rows * CELL_SIZE
        ),
        elements=elements,
    ).as_str()

"""Drawing of chart overlays onto the photograph.

AIDEV-NOTE: Every function here receives already computed geometry and
labels and only draws. Each returns a new RGBA image; translucent layers
are drawn on a separate overlay and alpha-composited so that overlapping
lines do not darken each other.
"""

from typing import TYPE_CHECKING, Sequence

from PIL import Image, ImageDraw, ImageFont

from knitgrid import working
from knitgrid.models import (
    DEFAULT_GRID_COLOR,
    DEFAULT_HIGHLIGHT_COLOR,
    GRID_LINE_ALPHA,
    HANDLE_RADIUS,
    LABEL_FONT_MAX,
    LABEL_FONT_MIN,
    LABEL_FONT_SCALE,
    LABEL_RADIUS_MAX,
    LABEL_RADIUS_MIN,
    LABEL_RADIUS_SCALE,
)

from .colors import hex_to_rgb
from .geometry import cell_polygon, grid_lines, map_cell_center, row_polygon, to_pixels

if TYPE_CHECKING:
    from knitgrid.models import ColorEntry, GridSpec, Point, ProjectState

    from .processor import PatternResult

HANDLE_FILL = "#3b82f6"
HANDLE_RING = "#ffffff"
DEFAULT_LABEL_TEXT = "#ffffff"
CORRECTION_MARK_COLOR = "#f59e0b"


def _rgba(
    color: "str | tuple | None",
    alpha: float = 1.0,
    fallback: "str | tuple | None" = None,
) -> "tuple[int, int, int, int] | None":
    """Hex string or tuple as RGBA, with alpha applied on top of any own alpha.

    A hex string that does not parse is replaced by `fallback`; without a
    fallback the result is None and the caller skips drawing.
    """
    if color is None or isinstance(color, str):
        rgb = hex_to_rgb(color)
        if rgb is None:
            if fallback is None:
                return None
            return _rgba(fallback, alpha)
        rgba = rgb + (255,)
    else:
        rgba = tuple(color) + (255,) * (4 - len(color))
    r, g, b, a = rgba
    return r, g, b, int(round(a * alpha))


def _composite(image: Image.Image, overlay: Image.Image) -> Image.Image:
    return Image.alpha_composite(image.convert("RGBA"), overlay)


def _pixel_polygon(
    points: "Sequence[Point]", width: int, height: int
) -> "list[tuple[float, float]]":
    return [(p.x * width, p.y * height) for p in points]


def label_metrics(width: int, height: int, grid: "GridSpec") -> "tuple[float, int]":
    """Label circle radius and font size for the average cell size."""
    min_cell_dim = min(width / grid.cols, height / grid.rows)
    radius = max(LABEL_RADIUS_MIN, min(LABEL_RADIUS_MAX, min_cell_dim * LABEL_RADIUS_SCALE))
    font_size = max(LABEL_FONT_MIN, min(LABEL_FONT_MAX, min_cell_dim * LABEL_FONT_SCALE))
    return radius, int(round(font_size))


def draw_grid(
    image: Image.Image,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    color: str,
    thickness: float,
) -> Image.Image:
    """Draw the interior grid lines of the crop quadrilateral."""
    lines = grid_lines(points, grid)
    if not lines:
        return image.convert("RGBA")

    width, height = image.size
    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    line_width = max(1, int(round(max(0.5, thickness))))
    fill = _rgba(color, GRID_LINE_ALPHA, fallback=DEFAULT_GRID_COLOR)
    for a, b in lines:
        pa, pb = to_pixels(a, width, height), to_pixels(b, width, height)
        draw.line([(pa.x, pa.y), (pb.x, pb.y)], fill=fill, width=line_width)
    return _composite(image, overlay)


def draw_color_labels(
    image: Image.Image,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    labels: "Sequence[ColorEntry | None]",
) -> Image.Image:
    """Draw a colored circle with the chart character at each cell center."""
    image = image.convert("RGBA")
    if not labels or points is None or len(points) != 4 or not grid.is_valid:
        return image

    width, height = image.size
    radius, font_size = label_metrics(width, height, grid)
    font = ImageFont.load_default(size=font_size)
    draw = ImageDraw.Draw(image)

    for row in range(grid.rows):
        for col in range(grid.cols):
            index = grid.index(row, col)
            if index >= len(labels):
                return image
            label = labels[index]
            fill = _rgba(label.hex) if label is not None else None
            if fill is None:
                continue

            center = to_pixels(map_cell_center(row, col, grid, points), width, height)
            draw.ellipse(
                [
                    center.x - radius,
                    center.y - radius,
                    center.x + radius,
                    center.y + radius,
                ],
                fill=fill,
            )
            draw.text(
                (center.x, center.y),
                label.char,
                fill=_rgba(label.text_color, fallback=DEFAULT_LABEL_TEXT),
                font=font,
                anchor="mm",
            )
    return image


def draw_quad_outline(
    image: Image.Image,
    points: "Sequence[Point] | None",
    color: str,
    thickness: float,
    max_points: int = 4,
) -> Image.Image:
    """Outline the crop points placed so far; closed once all corners exist."""
    image = image.convert("RGBA")
    if not points or len(points) < 2:
        return image

    width, height = image.size
    polyline = _pixel_polygon(points, width, height)
    if len(points) == max_points:
        polyline.append(polyline[0])

    draw = ImageDraw.Draw(image)
    draw.line(
        polyline,
        fill=_rgba(color, fallback=DEFAULT_GRID_COLOR),
        width=max(1, int(round(thickness))))
    return image


def draw_handles(
    image: Image.Image,
    points: "Sequence[Point] | None",
    radius: float = HANDLE_RADIUS,
) -> Image.Image:
    """Draw a draggable handle at each crop point."""
    image = image.convert("RGBA")
    if not points:
        return image

    width, height = image.size
    draw = ImageDraw.Draw(image)
    for p in points:
        c = to_pixels(p, width, height)
        draw.ellipse(
            [c.x - radius, c.y - radius, c.x + radius, c.y + radius],
            fill=_rgba(HANDLE_FILL),
            outline=_rgba(HANDLE_RING),
            width=2,
        )
    return image


def _fill_polygon(
    image: Image.Image, polygon: "Sequence[Point]", color: "str | tuple"
) -> Image.Image:
    image = image.convert("RGBA")
    if not polygon:
        return image
    width, height = image.size
    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    ImageDraw.Draw(overlay).polygon(
        _pixel_polygon(polygon, width, height),
        fill=_rgba(color, fallback=DEFAULT_HIGHLIGHT_COLOR),
    )
    return _composite(image, overlay)


def draw_row_highlight(
    image: Image.Image,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    grid_row: int,
    color: "str | tuple",
) -> Image.Image:
    """Shade one grid row."""
    if not 0 <= grid_row < grid.rows:
        return image.convert("RGBA")
    return _fill_polygon(image, row_polygon(grid_row, grid, points), color)


def draw_cell_highlight(
    image: Image.Image,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    grid_row: int,
    col: int,
    color: "str | tuple",
) -> Image.Image:
    """Shade one cell."""
    if not (0 <= grid_row < grid.rows and 0 <= col < grid.cols):
        return image.convert("RGBA")
    return _fill_polygon(image, cell_polygon(grid_row, col, grid, points), color)


def draw_correction_marks(
    image: Image.Image,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    corrections: "dict[int, str]",
    color: str = CORRECTION_MARK_COLOR,
) -> Image.Image:
    """Outline every manually corrected cell."""
    image = image.convert("RGBA")
    if not corrections or not grid.is_valid:
        return image

    width, height = image.size
    draw = ImageDraw.Draw(image)
    fill = _rgba(color, fallback=CORRECTION_MARK_COLOR)
    for index in corrections:
        if not 0 <= index < grid.cell_count:
            continue
        polygon = cell_polygon(*divmod(index, grid.cols), grid, points)
        if not polygon:
            continue
        outline = _pixel_polygon(polygon, width, height)
        draw.line(outline + [outline[0]], fill=fill, width=2)
    return image


def render_chart(
    image: Image.Image,
    project: "ProjectState",
    result: "PatternResult | None" = None,
) -> Image.Image:
    """Compose the full editor view of a project over its photograph."""
    points = project.crop_points
    canvas = draw_quad_outline(
        image, points, project.grid_color, project.grid_thickness
    )
    grid = project.grid

    if grid is not None and project.is_cropped:
        canvas = draw_grid(
            canvas, points, grid, project.grid_color, project.grid_thickness
        )

        state = project.working
        if state.is_active:
            grid_row = working.get_grid_row_from_working(
                state.current_row, state.start_from_bottom, grid.rows
            )
            canvas = draw_row_highlight(
                canvas, points, grid, grid_row, state.highlight_color
            )
            canvas = draw_cell_highlight(
                canvas,
                points,
                grid,
                grid_row,
                state.current_col,
                state.highlight_color,
            )

        if result is not None:
            canvas = draw_color_labels(canvas, points, grid, result.labels)
        canvas = draw_correction_marks(canvas, points, grid, project.corrections)

    if project.correction_mode:
        return canvas
    return draw_handles(canvas, points)

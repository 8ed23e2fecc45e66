"""Data models and constants for the knitting chart engine."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# --- Sampling & color constants ---

SAMPLE_SIZE = 3  # pixels, odd window averaged per cell
TEXT_COLOR_THRESHOLD = 0.179  # luminance above this gets black text
MAX_COLORS = 100
DEFAULT_DEDUP_THRESHOLD = 75.0
MAX_DEDUP_THRESHOLD = 441.0  # sqrt(3 * 255^2), black to white

# --- Grid constants ---

MIN_ROWS = 1
MAX_ROWS = 500
MIN_COLS = 1
MAX_COLS = 500
DEFAULT_GRID_COLOR = "#22c55e"
DEFAULT_GRID_THICKNESS = 2
GRID_LINE_ALPHA = 0.6

# --- Label rendering ---

LABEL_RADIUS_MIN = 4
LABEL_RADIUS_MAX = 12
LABEL_RADIUS_SCALE = 0.24
LABEL_FONT_MIN = 8
LABEL_FONT_MAX = 14
LABEL_FONT_SCALE = 0.28
HANDLE_RADIUS = 6  # px, crop corner handles
HANDLE_HIT_RADIUS = 12  # px, drag pick tolerance

# --- Corrections ---

MAX_UNDO_STEPS = 100
BRUSH_SIZE_MIN = 1
BRUSH_SIZE_MAX = 5

# --- Viewport ---

MIN_ZOOM = 0.5
MAX_ZOOM = 4.0

# --- Image upload ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_FORMATS = ("JPEG", "PNG", "WEBP")

# --- Projects ---

PROJECT_NAME_MIN_LENGTH = 1
PROJECT_NAME_MAX_LENGTH = 100

# Default project store location
PROJECTS_FILE = Path.home() / ".knitgrid_projects.json"

# rgba(34, 197, 94, 0.4)
DEFAULT_HIGHLIGHT_COLOR = (34, 197, 94, 102)


class StitchType(Enum):
    """Stitch type of a working row."""

    KNIT = "K"
    PURL = "P"


class Direction(Enum):
    """Reading direction of a working row."""

    LTR = "LTR"
    RTL = "RTL"


@dataclass(frozen=True)
class Point:
    """A 2D point.

    AIDEV-NOTE: Normalized to [0, 1] for crop/grid coordinates, raw pixels
    for canvas/image coordinates. Callers track which space they are in.
    """

    x: float
    y: float


@dataclass
class ColorEntry:
    """A palette color tagged with the character shown on the chart."""

    hex: str  # "#rrggbb"
    char: str  # single display character, need not be unique
    text_color: "str | None" = None  # precomputed contrasting label color

    def to_dict(self) -> dict:
        data = {"hex": self.hex, "char": self.char}
        if self.text_color is not None:
            data["textColor"] = self.text_color
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ColorEntry":
        return cls(
            hex=str(data["hex"]),
            char=str(data["char"]),
            text_color=data.get("textColor"),
        )


@dataclass(frozen=True)
class GridSpec:
    """Logical cell grid overlaid on the crop quadrilateral."""

    rows: int
    cols: int

    @classmethod
    def clamped(cls, rows: int, cols: int) -> "GridSpec":
        """Build a grid with rows/cols clamped to the supported range."""
        return cls(
            rows=max(MIN_ROWS, min(MAX_ROWS, int(rows))),
            cols=max(MIN_COLS, min(MAX_COLS, int(cols))),
        )

    @property
    def cell_count(self) -> int:
        return max(0, self.rows) * max(0, self.cols)

    @property
    def is_valid(self) -> bool:
        return self.rows > 0 and self.cols > 0

    def index(self, row: int, col: int) -> int:
        """Row-major cell index."""
        return row * self.cols + col


@dataclass
class WorkingState:
    """Which row/column is active while reading the chart, and the stitch convention."""

    is_active: bool = False
    current_row: int = 0  # working row, not grid row
    current_col: int = 0
    start_from_bottom: bool = True
    start_stitch: StitchType = StitchType.KNIT
    knit_direction: Direction = Direction.RTL
    purl_direction: Direction = Direction.LTR
    highlight_color: "tuple[int, int, int, int]" = DEFAULT_HIGHLIGHT_COLOR
    start_col: int = 0

    def to_dict(self) -> dict:
        return {
            "isActive": self.is_active,
            "currentRow": self.current_row,
            "currentCol": self.current_col,
            "startFromBottom": self.start_from_bottom,
            "startStitch": self.start_stitch.value,
            "knitDirection": self.knit_direction.value,
            "purlDirection": self.purl_direction.value,
            "highlightColor": list(self.highlight_color),
            "startCol": self.start_col,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkingState":
        state = cls()
        state.is_active = bool(data.get("isActive", state.is_active))
        state.current_row = int(data.get("currentRow", state.current_row))
        state.current_col = int(data.get("currentCol", state.current_col))
        state.start_from_bottom = bool(
            data.get("startFromBottom", state.start_from_bottom)
        )
        state.start_stitch = StitchType(data.get("startStitch", state.start_stitch.value))
        state.knit_direction = Direction(
            data.get("knitDirection", state.knit_direction.value)
        )
        state.purl_direction = Direction(
            data.get("purlDirection", state.purl_direction.value)
        )
        if "highlightColor" in data:
            state.highlight_color = tuple(int(c) for c in data["highlightColor"])
        state.start_col = int(data.get("startCol", state.start_col))
        return state


@dataclass
class ViewportState:
    """Zoom and pan of the editor canvas."""

    zoom_level: float = 1.0  # 1.0 = 100%
    pan_x: float = 0.0  # normalized pan offset
    pan_y: float = 0.0

    def __post_init__(self):
        self.zoom_level = max(MIN_ZOOM, min(MAX_ZOOM, float(self.zoom_level)))


@dataclass
class ProjectState:
    """Complete state of one chart project.

    AIDEV-NOTE: Every optional attribute gets its default here, once.
    Code consuming a ProjectState never applies its own fallbacks.
    Corrections are keyed by row-major cell index.
    """

    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))

    # Source photograph, base64 encoded
    image_data: "str | None" = None

    # Crop quadrilateral, normalized, ordered TL, TR, BR, BL
    crop_points: "list[Point] | None" = None

    grid: "GridSpec | None" = None
    grid_color: str = DEFAULT_GRID_COLOR
    grid_thickness: int = DEFAULT_GRID_THICKNESS

    colors: "list[ColorEntry]" = field(default_factory=list)
    working: WorkingState = field(default_factory=WorkingState)

    # Correction overlay and its history
    corrections: "dict[int, str]" = field(default_factory=dict)
    undo_stack: "list[dict[int, str]]" = field(default_factory=list)
    redo_stack: "list[dict[int, str]]" = field(default_factory=list)
    correction_mode: bool = False
    selected_letter: "str | None" = None
    brush_size: int = BRUSH_SIZE_MIN

    viewport: ViewportState = field(default_factory=ViewportState)

    @property
    def is_cropped(self) -> bool:
        return self.crop_points is not None and len(self.crop_points) == 4

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dict.

        Overlay keys become strings since JSON object keys must be strings.
        """
        return {
            "uuid": self.uuid,
            "name": self.name,
            "createdAt": self.created_at,
            "image": self.image_data,
            "cropPoints": (
                [{"x": p.x, "y": p.y} for p in self.crop_points]
                if self.crop_points is not None
                else None
            ),
            "rows": self.grid.rows if self.grid else None,
            "cols": self.grid.cols if self.grid else None,
            "gridColor": self.grid_color,
            "gridThickness": self.grid_thickness,
            "colors": [c.to_dict() for c in self.colors],
            "workingState": self.working.to_dict(),
            "correctedLetters": _overlay_to_json(self.corrections),
            "undoStack": [_overlay_to_json(s) for s in self.undo_stack],
            "redoStack": [_overlay_to_json(s) for s in self.redo_stack],
            "correctionModeActive": self.correction_mode,
            "selectedLetter": self.selected_letter,
            "brushSize": self.brush_size,
            "viewportState": {
                "zoomLevel": self.viewport.zoom_level,
                "panX": self.viewport.pan_x,
                "panY": self.viewport.pan_y,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectState":
        """Deserialize, falling back to defaults for missing fields."""
        project = cls()
        project.uuid = str(data.get("uuid", project.uuid))
        project.name = str(data.get("name", project.name))
        project.created_at = int(data.get("createdAt", project.created_at))
        project.image_data = data.get("image")

        crop = data.get("cropPoints")
        if crop is not None:
            project.crop_points = [Point(float(p["x"]), float(p["y"])) for p in crop]

        rows, cols = data.get("rows"), data.get("cols")
        if rows is not None and cols is not None:
            project.grid = GridSpec.clamped(rows, cols)

        project.grid_color = data.get("gridColor", project.grid_color)
        project.grid_thickness = int(data.get("gridThickness", project.grid_thickness))
        project.colors = [ColorEntry.from_dict(c) for c in data.get("colors", [])]
        project.working = WorkingState.from_dict(data.get("workingState", {}))

        project.corrections = _overlay_from_json(data.get("correctedLetters", {}))
        project.undo_stack = [_overlay_from_json(s) for s in data.get("undoStack", [])]
        project.redo_stack = [_overlay_from_json(s) for s in data.get("redoStack", [])]
        project.correction_mode = bool(
            data.get("correctionModeActive", project.correction_mode)
        )
        project.selected_letter = data.get("selectedLetter")
        project.brush_size = int(data.get("brushSize", project.brush_size))

        viewport = data.get("viewportState") or {}
        project.viewport = ViewportState(
            zoom_level=viewport.get("zoomLevel", 1.0),
            pan_x=float(viewport.get("panX", 0.0)),
            pan_y=float(viewport.get("panY", 0.0)),
        )
        return project


def _overlay_to_json(overlay: "dict[int, str]") -> "dict[str, str]":
    return {str(index): char for index, char in sorted(overlay.items())}


def _overlay_from_json(data: "dict[str, str]") -> "dict[int, str]":
    return {int(index): str(char) for index, char in data.items()}


@dataclass
class ChartProcessingConfig:
    """Configuration for sampling a photograph into a chart."""

    # Cell sampling window (pixels, odd)
    sample_size: int = SAMPLE_SIZE

    # Palette suggestion
    palette_method: str = "threshold"  # "threshold" or "kmeans"
    dedup_threshold: float = DEFAULT_DEDUP_THRESHOLD  # RGB distance
    num_colors: int = 8  # cluster count for "kmeans"

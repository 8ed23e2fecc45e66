"""Main chart processor orchestrating photograph-to-chart conversion.

AIDEV-NOTE: Ties together sampling, palette matching and row encoding.
The processor holds no project state; it reads a ProjectState and
returns computed results.
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from PIL import Image, UnidentifiedImageError

from knitgrid import working
from knitgrid.models import (
    ALLOWED_IMAGE_FORMATS,
    MAX_IMAGE_BYTES,
    ChartProcessingConfig,
    ColorEntry,
)

from .colors import find_closest_palette_entry, get_contrast_text_color
from .palette import suggest_palette
from .sampling import extract_cell_colors

if TYPE_CHECKING:
    from knitgrid.models import ProjectState

logger = logging.getLogger(__name__)


@dataclass
class PatternResult:
    """Result of processing one project."""

    # Sampled color per cell, row-major; None where sampling failed
    cell_colors: "list[str | None]"

    # Label drawn on each cell (None where the cell has no label)
    labels: "list[ColorEntry | None]"

    # Encoded rows in working order
    rows: "list[working.PatternRow]" = field(default_factory=list)

    image_width: int = 0
    image_height: int = 0


class PatternProcessor:
    """Turns a cropped photograph into chart cells and encoded rows."""

    def __init__(self, processing_config: "ChartProcessingConfig | None" = None):
        self.processing_config = processing_config or ChartProcessingConfig()

    def load_image(self, source: "str | Path | bytes") -> Image.Image:
        """Load and validate an image file.

        Args:
            source: Path to an image file, or its raw bytes

        Returns:
            PIL Image in RGBA mode

        Raises:
            ValueError: If the image is too large, of an unsupported format,
                or cannot be decoded
        """
        try:
            if isinstance(source, (bytes, bytearray)):
                data = bytes(source)
            else:
                data = Path(source).read_bytes()
        except OSError as e:
            raise ValueError(f"Failed to load image: {e}") from e

        if len(data) > MAX_IMAGE_BYTES:
            raise ValueError(
                f"Image is {len(data)} bytes, limit is {MAX_IMAGE_BYTES} bytes"
            )

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Failed to load image: {e}") from e

        if image.format not in ALLOWED_IMAGE_FORMATS:
            raise ValueError(
                f"Unsupported image format {image.format}; "
                f"expected one of {', '.join(ALLOWED_IMAGE_FORMATS)}"
            )

        # AIDEV-NOTE: Always convert to RGBA for consistent processing
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return image

    def compute_cell_colors(
        self, image: Image.Image, project: "ProjectState"
    ) -> "list[str | None]":
        """Sample every cell of the project's grid.

        Returns an empty list until the project is cropped and has a grid.
        """
        if not project.is_cropped or project.grid is None:
            return []
        return extract_cell_colors(
            image,
            project.crop_points,
            project.grid,
            self.processing_config.sample_size,
        )

    def suggest_colors(
        self, cell_colors: "Sequence[str | None]", existing: "Sequence[ColorEntry]" = ()
    ) -> "list[ColorEntry]":
        """Palette entries for sampled colors not yet covered by the palette."""
        config = self.processing_config
        return suggest_palette(
            cell_colors,
            method=config.palette_method,
            threshold=config.dedup_threshold,
            num_colors=config.num_colors,
            existing=existing,
        )

    def cell_labels(
        self,
        cell_colors: "Sequence[str | None]",
        palette: "Sequence[ColorEntry]",
        corrections: "dict[int, str] | None" = None,
    ) -> "list[ColorEntry | None]":
        """The palette entry drawn on each cell.

        Corrected cells show the first palette entry carrying the corrected
        char, or a gray placeholder entry if no entry carries it. Cells whose
        sampling failed get no label.
        """
        corrections = corrections or {}
        by_char: "dict[str, ColorEntry]" = {}
        for entry in palette:
            by_char.setdefault(entry.char, entry)

        labels: "list[ColorEntry | None]" = []
        for index, color in enumerate(cell_colors):
            if index in corrections:
                char = corrections[index]
                entry = by_char.get(char) or ColorEntry(hex="#808080", char=char)
            elif color is None:
                entry = None
            else:
                entry = find_closest_palette_entry(color, palette)
            if entry is not None and entry.text_color is None:
                entry = ColorEntry(
                    hex=entry.hex,
                    char=entry.char,
                    text_color=get_contrast_text_color(entry.hex),
                )
            labels.append(entry)
        return labels

    def process(self, image: Image.Image, project: "ProjectState") -> PatternResult:
        """Execute the complete chart pipeline for one project.

        Args:
            image: Source photograph
            project: Project supplying crop, grid, palette, working state
                and corrections

        Returns:
            PatternResult with cell colors, labels and encoded rows
        """
        width, height = image.size
        cell_colors = self.compute_cell_colors(image, project)
        logger.debug(
            "Sampled %d cells from %dx%d image for project %s",
            len(cell_colors),
            width,
            height,
            project.uuid,
        )

        labels = self.cell_labels(cell_colors, project.colors, project.corrections)
        rows = []
        if cell_colors and project.grid is not None:
            rows = working.encode_pattern(
                cell_colors,
                project.grid,
                project.colors,
                project.working,
                project.corrections,
            )

        return PatternResult(
            cell_colors=cell_colors,
            labels=labels,
            rows=rows,
            image_width=width,
            image_height=height,
        )

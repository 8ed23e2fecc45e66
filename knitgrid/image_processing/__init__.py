"""Image processing pipeline for photo-to-chart conversion.

AIDEV-NOTE: This package handles the pipeline from a cropped photograph
to a labeled stitch chart. Organized into modular components:
- processor: Main PatternProcessor orchestrator
- geometry: Bilinear quadrilateral mapping and grid geometry
- colors: Hex/RGB conversion, luminance and nearest palette match
- palette: Palette suggestion from sampled cell colors
- sampling: Per-cell color sampling
- rendering: Overlay drawing (grid, labels, highlights)
- export: Text and SVG chart export
"""

from .processor import PatternProcessor, PatternResult
from .export import chart_to_svg, chart_to_text

__all__ = ["PatternProcessor", "PatternResult", "chart_to_svg", "chart_to_text"]

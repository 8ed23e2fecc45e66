"""Knitting chart engine: photographs of patterns to stitch-by-stitch charts."""

from knitgrid.image_processing import PatternProcessor, PatternResult
from knitgrid.corrections import CorrectionEngine
from knitgrid.models import (
    ColorEntry,
    Direction,
    GridSpec,
    Point,
    ProjectState,
    StitchType,
    WorkingState,
)
from knitgrid.project_store import InMemoryProjectRepository, ProjectRepository
from knitgrid.session import EditingSession
from knitgrid.working import encode_pattern, encode_row

__all__ = [
    "ColorEntry",
    "CorrectionEngine",
    "Direction",
    "EditingSession",
    "GridSpec",
    "InMemoryProjectRepository",
    "PatternProcessor",
    "PatternResult",
    "Point",
    "ProjectRepository",
    "ProjectState",
    "StitchType",
    "WorkingState",
    "encode_pattern",
    "encode_row",
]

"""Editing session: explicit load, mutate, save of project state.

AIDEV-NOTE: The session is the only writer of a project's overlay. Each
public mutator loads the whole project from the repository, applies one
change, and saves the whole project back before returning. Operations on
an unknown project id do nothing and return None/False.
"""

import base64
import dataclasses
import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence, TypeVar

from knitgrid.corrections import CorrectionEngine
from knitgrid.image_processing.processor import PatternProcessor, PatternResult
from knitgrid.models import (
    PROJECT_NAME_MAX_LENGTH,
    PROJECT_NAME_MIN_LENGTH,
    ColorEntry,
    GridSpec,
    Point,
    ProjectState,
    ViewportState,
)

if TYPE_CHECKING:
    from knitgrid.project_store import ProjectRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_project_name(name: str) -> str:
    """Strip and length-check a project name.

    Raises:
        ValueError: If the name is empty or too long
    """
    name = (name or "").strip()
    if not PROJECT_NAME_MIN_LENGTH <= len(name) <= PROJECT_NAME_MAX_LENGTH:
        raise ValueError(
            f"Project name must be {PROJECT_NAME_MIN_LENGTH}-"
            f"{PROJECT_NAME_MAX_LENGTH} characters"
        )
    return name


def _engine_for(project: ProjectState) -> CorrectionEngine:
    engine = CorrectionEngine(
        overlay=project.corrections,
        undo_stack=project.undo_stack,
        redo_stack=project.redo_stack,
    )
    engine.correction_mode = project.correction_mode
    engine.selected_letter = project.selected_letter
    engine.brush_size = project.brush_size
    return engine


def _store_engine(project: ProjectState, engine: CorrectionEngine) -> None:
    project.corrections = engine.overlay
    project.undo_stack = engine.undo_stack
    project.redo_stack = engine.redo_stack
    project.correction_mode = engine.correction_mode
    project.selected_letter = engine.selected_letter
    project.brush_size = engine.brush_size


class EditingSession:
    """Applies user edits to projects held in a repository."""

    def __init__(
        self,
        repository: "ProjectRepository",
        processor: Optional[PatternProcessor] = None,
    ):
        self.repository = repository
        self.processor = processor or PatternProcessor()

    # --- Plumbing ---

    def _mutate(self, project_id: str, change: "Callable[[ProjectState], T]") -> "T | None":
        project = self.repository.load(project_id)
        if project is None:
            logger.debug("Ignoring edit of unknown project %s", project_id)
            return None
        result = change(project)
        ok, error = self.repository.save(project_id, project)
        if not ok:
            logger.warning("Edit of project %s was not persisted: %s", project_id, error)
        return result

    def _with_engine(
        self, project_id: str, change: "Callable[[CorrectionEngine, ProjectState], T]"
    ) -> "T | None":
        def apply(project: ProjectState):
            engine = _engine_for(project)
            result = change(engine, project)
            _store_engine(project, engine)
            return result

        return self._mutate(project_id, apply)

    # --- Project records ---

    def create_project(self, name: str) -> ProjectState:
        project = ProjectState(name=validate_project_name(name))
        self.repository.save(project.uuid, project)
        logger.info("Created project %s (%s)", project.uuid, project.name)
        return project

    def get(self, project_id: str) -> Optional[ProjectState]:
        return self.repository.load(project_id)

    def list_projects(self) -> "list[ProjectState]":
        projects = []
        for project_id in self.repository.list_ids():
            project = self.repository.load(project_id)
            if project is not None:
                projects.append(project)
        return sorted(projects, key=lambda p: p.created_at)

    def rename_project(self, project_id: str, name: str) -> Optional[ProjectState]:
        name = validate_project_name(name)

        def rename(project: ProjectState):
            project.name = name
            return project

        return self._mutate(project_id, rename)

    def delete_project(self, project_id: str) -> bool:
        return self.repository.delete(project_id)

    # --- Source image, crop and grid ---

    def set_image(self, project_id: str, image_bytes: "bytes | None") -> Optional[ProjectState]:
        """Attach (or with None, remove) the source photograph.

        Raises:
            ValueError: If the bytes are not an accepted image
        """
        encoded = None
        if image_bytes is not None:
            self.processor.load_image(image_bytes)
            encoded = base64.b64encode(image_bytes).decode("ascii")

        def attach(project: ProjectState):
            project.image_data = encoded
            return project

        return self._mutate(project_id, attach)

    def set_crop(
        self,
        project_id: str,
        points: "Sequence[Point | tuple[float, float]] | None",
    ) -> Optional[ProjectState]:
        """Replace the crop quadrilateral (normalized TL, TR, BR, BL)."""
        crop = None
        if points is not None:
            crop = [p if isinstance(p, Point) else Point(float(p[0]), float(p[1])) for p in points]

        def recrop(project: ProjectState):
            project.crop_points = crop
            return project

        return self._mutate(project_id, recrop)

    def move_crop_corner(self, project_id: str, index: int, point: Point) -> Optional[ProjectState]:
        """Move one crop corner, clamped to the image."""
        clamped = Point(min(1.0, max(0.0, point.x)), min(1.0, max(0.0, point.y)))

        def move(project: ProjectState):
            if project.crop_points is None or not 0 <= index < len(project.crop_points):
                logger.debug("No crop corner %d on project %s", index, project.uuid)
                return project
            project.crop_points = list(project.crop_points)
            project.crop_points[index] = clamped
            return project

        return self._mutate(project_id, move)

    def set_grid(
        self,
        project_id: str,
        rows: int,
        cols: int,
        grid_color: Optional[str] = None,
        grid_thickness: Optional[int] = None,
    ) -> Optional[ProjectState]:
        grid = GridSpec.clamped(rows, cols)

        def resize(project: ProjectState):
            project.grid = grid
            if grid_color is not None:
                project.grid_color = grid_color
            if grid_thickness is not None:
                project.grid_thickness = grid_thickness
            return project

        return self._mutate(project_id, resize)

    def set_colors(self, project_id: str, colors: "Iterable[ColorEntry]") -> Optional[ProjectState]:
        palette = list(colors)

        def recolor(project: ProjectState):
            project.colors = palette
            return project

        return self._mutate(project_id, recolor)

    def update_working(self, project_id: str, **fields) -> Optional[ProjectState]:
        """Replace WorkingState fields, e.g. update_working(pid, start_from_bottom=False)."""

        def update(project: ProjectState):
            project.working = dataclasses.replace(project.working, **fields)
            return project

        return self._mutate(project_id, update)

    def set_viewport(self, project_id: str, **fields) -> Optional[ProjectState]:
        def update(project: ProjectState):
            project.viewport = ViewportState(**{**dataclasses.asdict(project.viewport), **fields})
            return project

        return self._mutate(project_id, update)

    # --- Working row navigation ---

    def _step(self, project_id: str, attr: str, delta: int) -> Optional[int]:
        def step(project: ProjectState):
            if project.grid is None:
                return getattr(project.working, attr)
            limit = project.grid.rows if attr == "current_row" else project.grid.cols
            value = min(limit - 1, max(0, getattr(project.working, attr) + delta))
            setattr(project.working, attr, value)
            return value

        return self._mutate(project_id, step)

    def next_row(self, project_id: str) -> Optional[int]:
        return self._step(project_id, "current_row", 1)

    def prev_row(self, project_id: str) -> Optional[int]:
        return self._step(project_id, "current_row", -1)

    def next_col(self, project_id: str) -> Optional[int]:
        return self._step(project_id, "current_col", 1)

    def prev_col(self, project_id: str) -> Optional[int]:
        return self._step(project_id, "current_col", -1)

    # --- Corrections ---

    def paint_cell(self, project_id: str, index: int, char: str) -> Optional[ProjectState]:
        def paint(engine: CorrectionEngine, project: ProjectState):
            engine.paint_cell(index, char)
            return project

        return self._with_engine(project_id, paint)

    def paint_brush(
        self, project_id: str, row: int, col: int, char: Optional[str] = None
    ) -> "list[int] | None":
        """Paint around (row, col) with the project's brush and selected letter."""

        def paint(engine: CorrectionEngine, project: ProjectState):
            letter = char if char is not None else engine.selected_letter
            if letter is None or project.grid is None:
                logger.debug("Nothing to paint on project %s", project.uuid)
                return []
            return engine.paint_brush(row, col, project.grid, letter)

        return self._with_engine(project_id, paint)

    def erase_cell(self, project_id: str, index: int) -> Optional[bool]:
        return self._with_engine(project_id, lambda engine, _: engine.erase_cell(index))

    def undo(self, project_id: str) -> Optional[bool]:
        return self._with_engine(project_id, lambda engine, _: engine.undo())

    def redo(self, project_id: str) -> Optional[bool]:
        return self._with_engine(project_id, lambda engine, _: engine.redo())

    def clear_corrections(self, project_id: str) -> Optional[ProjectState]:
        def clear(engine: CorrectionEngine, project: ProjectState):
            engine.clear_corrections()
            return project

        return self._with_engine(project_id, clear)

    def toggle_correction_mode(self, project_id: str) -> Optional[bool]:
        return self._with_engine(project_id, lambda engine, _: engine.toggle_correction_mode())

    def set_correction_letter(self, project_id: str, char: str) -> Optional[ProjectState]:
        def select(engine: CorrectionEngine, project: ProjectState):
            engine.set_correction_letter(char)
            return project

        return self._with_engine(project_id, select)

    def set_brush_size(self, project_id: str, size: int) -> Optional[int]:
        return self._with_engine(project_id, lambda engine, _: engine.set_brush_size(size))

    # --- Chart ---

    def compute_pattern(self, project_id: str) -> Optional[PatternResult]:
        """Sample the project's photograph and encode the chart. Read-only."""
        project = self.repository.load(project_id)
        if project is None or project.image_data is None:
            return None
        image = self.processor.load_image(base64.b64decode(project.image_data))
        return self.processor.process(image, project)

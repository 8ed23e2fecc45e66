"""Manual cell corrections with bounded undo/redo history.

AIDEV-NOTE: History is linear. Every mutating edit pushes a full copy of
the overlay onto the undo stack before changing it and then empties the
redo stack, so editing after an undo discards the redoable branch. Both
stacks are deques with maxlen, which evicts the oldest snapshot once the
cap is reached instead of refusing the edit.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Iterable, Mapping

from knitgrid.models import BRUSH_SIZE_MAX, BRUSH_SIZE_MIN, MAX_UNDO_STEPS

if TYPE_CHECKING:
    from knitgrid.models import GridSpec

logger = logging.getLogger(__name__)


def clamp_brush_size(size: int) -> int:
    return max(BRUSH_SIZE_MIN, min(BRUSH_SIZE_MAX, int(size)))


def brush_cells(row: int, col: int, grid: "GridSpec", size: int) -> "list[int]":
    """Cell indices covered by a square brush centered on (row, col), clipped to the grid."""
    size = clamp_brush_size(size)
    offset = -((size - 1) // 2)
    cells = []
    for r in range(row + offset, row + offset + size):
        if not 0 <= r < grid.rows:
            continue
        for c in range(col + offset, col + offset + size):
            if 0 <= c < grid.cols:
                cells.append(grid.index(r, c))
    return cells


class CorrectionEngine:
    """Correction overlay of one project plus its undo/redo history."""

    def __init__(
        self,
        overlay: "Mapping[int, str] | None" = None,
        undo_stack: "Iterable[Mapping[int, str]] | None" = None,
        redo_stack: "Iterable[Mapping[int, str]] | None" = None,
        max_depth: int = MAX_UNDO_STEPS,
    ):
        self.max_depth = max_depth
        self._overlay: "dict[int, str]" = dict(overlay or {})
        self._undo: "deque[dict[int, str]]" = deque(
            (dict(s) for s in undo_stack or ()), maxlen=max_depth
        )
        self._redo: "deque[dict[int, str]]" = deque(
            (dict(s) for s in redo_stack or ()), maxlen=max_depth
        )
        self.correction_mode = False
        self.selected_letter: "str | None" = None
        self.brush_size = BRUSH_SIZE_MIN

    # --- Queries ---

    @property
    def overlay(self) -> "dict[int, str]":
        """Copy of the current overlay."""
        return dict(self._overlay)

    @property
    def undo_stack(self) -> "list[dict[int, str]]":
        """Undo snapshots, oldest first."""
        return [dict(s) for s in self._undo]

    @property
    def redo_stack(self) -> "list[dict[int, str]]":
        """Redo snapshots, oldest first."""
        return [dict(s) for s in self._redo]

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def char_at(self, index: int) -> "str | None":
        return self._overlay.get(index)

    # --- Mutations ---

    def _commit(self, changes: "Mapping[int, str | None]") -> None:
        # snapshot, then mutate, then drop the redo branch
        self._undo.append(dict(self._overlay))
        for index, char in changes.items():
            if char is None:
                self._overlay.pop(index, None)
            else:
                self._overlay[index] = char
        self._redo.clear()

    def paint_cell(self, index: int, char: str) -> None:
        """Override the classification of one cell."""
        self._commit({index: char})

    def paint_brush(self, row: int, col: int, grid: "GridSpec", char: str) -> "list[int]":
        """Paint a brush-sized square of cells as a single undoable edit.

        Returns:
            Indices of the painted cells (empty if the brush missed the grid)
        """
        cells = brush_cells(row, col, grid, self.brush_size)
        if not cells:
            logger.debug("Brush at (%d, %d) is outside the grid", row, col)
            return []
        self._commit({index: char for index in cells})
        return cells

    def erase_cell(self, index: int) -> bool:
        """Remove a correction so the cell falls back to color matching."""
        if index not in self._overlay:
            return False
        self._commit({index: None})
        return True

    def undo(self) -> bool:
        """Restore the overlay from before the last edit. False if nothing to undo."""
        if not self._undo:
            return False
        previous = self._undo.pop()
        self._redo.append(self._overlay)
        self._overlay = previous
        return True

    def redo(self) -> bool:
        """Reapply the last undone edit. False if nothing to redo."""
        if not self._redo:
            return False
        following = self._redo.pop()
        self._undo.append(self._overlay)
        self._overlay = following
        return True

    def clear_corrections(self) -> None:
        """Drop every correction and all history. Not undoable."""
        self._overlay = {}
        self._undo.clear()
        self._redo.clear()

    # --- Mode flags ---

    def toggle_correction_mode(self) -> bool:
        self.correction_mode = not self.correction_mode
        return self.correction_mode

    def set_correction_letter(self, char: str) -> None:
        self.selected_letter = char

    def set_brush_size(self, size: int) -> int:
        self.brush_size = clamp_brush_size(size)
        return self.brush_size

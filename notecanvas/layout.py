"""Insertion layout for new notes.

New notes are packed left to right along a row near the bottom of the
visible canvas. Notes in other rows may still overlap; only the target row
is kept clear.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from PySide6.QtCore import Slot

from .constants import (
    DEFAULT_INSERT_X,
    INSERT_BOTTOM_MARGIN,
    MIN_INSERT_Y,
    ROW_GAP,
    SAME_ROW_TOLERANCE,
)
from .types import CanvasBounds, Note

if TYPE_CHECKING:
    from .model import NoteCanvasModel


@dataclass(frozen=True)
class TargetBand:
    """Row a new note should be inserted into."""

    x: float
    y: float


def default_target_band(canvas_height: float) -> TargetBand:
    return TargetBand(DEFAULT_INSERT_X, max(MIN_INSERT_Y, canvas_height - INSERT_BOTTOM_MARGIN))


def notes_in_row(existing_notes: Iterable[Note], band_y: float) -> List[Note]:
    return [note for note in existing_notes if abs(note.y - band_y) < SAME_ROW_TOLERANCE]


def place_new_note(existing_notes: Iterable[Note], target_band: TargetBand) -> Tuple[float, float]:
    """Return the ``(x, y)`` insertion point for a new note.

    Args:
        existing_notes: Notes already on the canvas.
        target_band: Row to insert into; its x is used when the row is empty.

    Returns:
        The band's y and either the band's x or the right edge of the
        rightmost note in the row plus the row gap.
    """
    row = notes_in_row(existing_notes, target_band.y)
    if not row:
        return target_band.x, target_band.y
    rightmost = max(note.x + note.width for note in row)
    return rightmost + ROW_GAP, target_band.y


class LayoutMixin:
    """Mixin exposing insertion placement to the presentation layer."""

    # Attributes expected from NoteCanvasModel
    _notes: List[Note]
    _bounds: CanvasBounds
    _pending_placements: Dict[int, Note]

    def _insert_position(self, canvas_height: Optional[float] = None) -> Tuple[float, float]:
        height = self._bounds.height if canvas_height is None else canvas_height
        # Notes still being created hold their slots until the store answers.
        occupied = list(self._notes) + list(self._pending_placements.values())
        return place_new_note(occupied, default_target_band(height))

    @Slot(result="QVariant")
    def nextInsertPosition(self) -> Dict[str, float]:
        """Return where the next pasted or created note will land."""
        x, y = self._insert_position()
        return {"x": x, "y": y}

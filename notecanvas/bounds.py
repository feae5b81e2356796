"""Canvas extent derived from note extents."""

from __future__ import annotations

from typing import Iterable

from .constants import CANVAS_MARGIN, MIN_CANVAS_HEIGHT, MIN_CANVAS_WIDTH
from .types import CanvasBounds, Note


def compute_bounds(notes: Iterable[Note]) -> CanvasBounds:
    """Return the canvas size needed to show every note plus a margin.

    The result never drops below ``MIN_CANVAS_WIDTH`` x ``MIN_CANVAS_HEIGHT``.
    """
    width = MIN_CANVAS_WIDTH
    height = MIN_CANVAS_HEIGHT
    for note in notes:
        width = max(width, note.x + note.width + CANVAS_MARGIN)
        height = max(height, note.y + note.height + CANVAS_MARGIN)
    return CanvasBounds(width=width, height=height)

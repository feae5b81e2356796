"""Rectangle, point and anchor math in canvas-local coordinates."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from .constants import ANCHOR_HIT_RADIUS
from .types import Note, Point, Rect, Side


def anchor_point(note: Note, side: Side) -> Point:
    """Return the connection anchor of ``note`` on ``side``.

    Anchors sit at the middle of each edge: top and bottom share the centre x,
    left and right share the centre y.
    """
    center = note.rect.center
    if side is Side.TOP:
        return Point(center.x, note.y)
    if side is Side.RIGHT:
        return Point(note.x + note.width, center.y)
    if side is Side.BOTTOM:
        return Point(center.x, note.y + note.height)
    return Point(note.x, center.y)


def distance(p: Point, q: Point) -> float:
    return math.hypot(p.x - q.x, p.y - q.y)


def within_anchor_hit_radius(p: Point, anchor: Point, radius: float = ANCHOR_HIT_RADIUS) -> bool:
    return distance(p, anchor) <= radius


def contains_point(rect: Rect, p: Point) -> bool:
    return rect.x <= p.x <= rect.x + rect.width and rect.y <= p.y <= rect.y + rect.height


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    """Return the shortest distance from ``p`` to the segment ``a``-``b``."""
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(p, a)
    t = ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return distance(p, Point(a.x + t * dx, a.y + t * dy))


def find_anchor_at(
    notes: Iterable[Note],
    p: Point,
    radius: float = ANCHOR_HIT_RADIUS,
    exclude_note_id: Optional[str] = None,
) -> Optional[Tuple[str, Side]]:
    """Find the first anchor within ``radius`` of ``p``.

    Notes are scanned in the given order and sides in ``Side`` order, so the
    result is deterministic when anchors of neighbouring notes overlap.

    Args:
        notes: Candidate notes, usually in creation order.
        p: Pointer position in canvas coordinates.
        radius: Hit radius around each anchor.
        exclude_note_id: Note whose anchors are skipped (the connect source).

    Returns:
        ``(note_id, side)`` of the hit anchor, or None.
    """
    for note in notes:
        if note.id == exclude_note_id:
            continue
        for side in Side:
            if within_anchor_hit_radius(p, anchor_point(note, side), radius):
                return note.id, side
    return None

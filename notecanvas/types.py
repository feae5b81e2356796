"""Data types for NoteCanvas notebooks.

This module contains the core data structures shared by the canvas engine,
the Qt view-model and the persistence store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union


def utc_now() -> str:
    """Return the current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


class NoteType(Enum):
    """Supported note card types."""

    TEXT = "text"
    IMAGE = "image"


class Side(Enum):
    """Anchor sides of a note rectangle, in hit-test order."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class TargetKind(Enum):
    """What the pointer was over when a gesture started."""

    CANVAS = "canvas"
    NOTE_BODY = "note_body"
    DRAG_HANDLE = "drag_handle"
    RESIZE_HANDLE = "resize_handle"
    ANCHOR = "anchor"


@dataclass(frozen=True)
class Point:
    """A point in canvas-local coordinates."""

    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle in canvas-local coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class Note:
    """A text or image card placed on a notebook canvas."""

    id: str
    note_type: NoteType
    content: str
    x: float
    y: float
    width: float = 300.0
    height: float = 200.0
    notebook_id: str = ""
    created_at: str = field(default_factory=utc_now)

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class Notebook:
    """A named collection of notes."""

    id: str
    name: str
    subtitle: str = ""
    cover_image: str = ""
    created_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class Connection:
    """A directed edge between an anchor on one note and an anchor on another."""

    id: str
    from_note_id: str
    to_note_id: str
    from_side: Side
    to_side: Side

    @property
    def key(self) -> tuple:
        return (self.from_note_id, self.to_note_id, self.from_side, self.to_side)


@dataclass
class NotebookSnapshot:
    """A notebook with its notes (creation order) and connections."""

    notebook: Notebook
    notes: List[Note]
    connections: List[Connection]


@dataclass(frozen=True)
class CanvasBounds:
    """Rendered canvas extent."""

    width: float
    height: float


@dataclass(frozen=True)
class PointerTarget:
    """The element under the pointer when a gesture starts."""

    kind: TargetKind
    note_id: str = ""
    side: Optional[Side] = None


# --- Interaction states ------------------------------------------------------
@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class Dragging:
    """A note is being moved; grab_offset is pointer minus note origin."""

    note_id: str
    grab_offset: Point


@dataclass(frozen=True)
class Resizing:
    """A note is being resized from its bottom-right corner."""

    note_id: str
    start_pointer: Point
    start_width: float
    start_height: float


@dataclass(frozen=True)
class Connecting:
    """A connection is being dragged out from an anchor."""

    from_note_id: str
    from_side: Side
    pointer: Point


InteractionState = Union[Idle, Dragging, Resizing, Connecting]

IDLE = Idle()


@dataclass(frozen=True)
class EditSession:
    """In-place text editing of a single note."""

    note_id: str
    buffer: str

"""Pure projection of model and interaction state into draw primitives.

Nothing here caches anything between frames: the scene is rebuilt from the
notes, connections and interaction state every time it is requested.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .connections import hit_test, project_for_render
from .constants import (
    ANCHOR_COLOR,
    ANCHOR_TARGET_COLOR,
    CONNECTION_COLOR,
    CONNECTION_HOVER_COLOR,
    CONNECTION_HOVER_WIDTH,
    CONNECTION_WIDTH,
    DELETE_MARKER_RADIUS,
    DRAG_LINE_COLOR,
    NOTE_BORDER_COLORS,
)
from .geometry import anchor_point, midpoint
from .interaction import drop_target
from .types import (
    Connecting,
    Connection,
    Dragging,
    InteractionState,
    Note,
    Point,
    Resizing,
    Side,
)


@dataclass(frozen=True)
class NotePrimitive:
    note_id: str
    note_type: str
    content: str
    x: float
    y: float
    width: float
    height: float
    state: str
    border_color: str


@dataclass(frozen=True)
class AnchorPrimitive:
    note_id: str
    side: str
    x: float
    y: float
    color: str
    highlighted: bool = False


@dataclass(frozen=True)
class ConnectionPrimitive:
    connection_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float
    hovered: bool = False


@dataclass(frozen=True)
class DeleteMarkerPrimitive:
    connection_id: str
    x: float
    y: float
    radius: float = DELETE_MARKER_RADIUS


@dataclass(frozen=True)
class DragLinePrimitive:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = DRAG_LINE_COLOR


@dataclass
class Scene:
    """Everything the presentation layer needs to draw one frame."""

    notes: List[NotePrimitive] = field(default_factory=list)
    anchors: List[AnchorPrimitive] = field(default_factory=list)
    connections: List[ConnectionPrimitive] = field(default_factory=list)
    delete_marker: Optional[DeleteMarkerPrimitive] = None
    drag_line: Optional[DragLinePrimitive] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notes": [asdict(p) for p in self.notes],
            "anchors": [asdict(p) for p in self.anchors],
            "connections": [asdict(p) for p in self.connections],
            "deleteMarker": asdict(self.delete_marker) if self.delete_marker else None,
            "dragLine": asdict(self.drag_line) if self.drag_line else None,
        }


def _note_state(note: Note, state: InteractionState, editing_note_id: Optional[str]) -> str:
    if isinstance(state, Dragging) and state.note_id == note.id:
        return "dragging"
    if isinstance(state, Resizing) and state.note_id == note.id:
        return "resizing"
    if editing_note_id == note.id:
        return "editing"
    return "normal"


def project_scene(
    notes: Iterable[Note],
    connections: Iterable[Connection],
    state: InteractionState,
    hovered_connection_id: Optional[str] = None,
    editing_note_id: Optional[str] = None,
) -> Scene:
    """Build the draw primitives for the current frame.

    Args:
        notes: Notes in creation (paint) order.
        connections: All known connections; dangling ones are skipped.
        state: Current interaction state.
        hovered_connection_id: Connection under the pointer, if any.
        editing_note_id: Note with an open edit session, if any.
    """
    notes = list(notes)
    scene = Scene()
    target = drop_target(state, notes)

    for note in notes:
        visual = _note_state(note, state, editing_note_id)
        scene.notes.append(NotePrimitive(
            note_id=note.id,
            note_type=note.note_type.value,
            content=note.content,
            x=note.x,
            y=note.y,
            width=note.width,
            height=note.height,
            state=visual,
            border_color=NOTE_BORDER_COLORS[visual],
        ))
        for side in Side:
            point = anchor_point(note, side)
            highlighted = target == (note.id, side)
            scene.anchors.append(AnchorPrimitive(
                note_id=note.id,
                side=side.value,
                x=point.x,
                y=point.y,
                color=ANCHOR_TARGET_COLOR if highlighted else ANCHOR_COLOR,
                highlighted=highlighted,
            ))

    for rendered in project_for_render(connections, notes):
        hovered = rendered.id == hovered_connection_id
        scene.connections.append(ConnectionPrimitive(
            connection_id=rendered.id,
            x1=rendered.from_point.x,
            y1=rendered.from_point.y,
            x2=rendered.to_point.x,
            y2=rendered.to_point.y,
            color=CONNECTION_HOVER_COLOR if hovered else CONNECTION_COLOR,
            width=CONNECTION_HOVER_WIDTH if hovered else CONNECTION_WIDTH,
            hovered=hovered,
        ))
        if hovered:
            center = midpoint(rendered.from_point, rendered.to_point)
            scene.delete_marker = DeleteMarkerPrimitive(rendered.id, center.x, center.y)

    if isinstance(state, Connecting):
        source = next((note for note in notes if note.id == state.from_note_id), None)
        if source is not None:
            start = anchor_point(source, state.from_side)
            scene.drag_line = DragLinePrimitive(start.x, start.y, state.pointer.x, state.pointer.y)

    return scene


def hovered_connection_at(
    notes: Iterable[Note],
    connections: Iterable[Connection],
    state: InteractionState,
    pointer: Point,
) -> Optional[str]:
    """Return the connection under ``pointer`` for the delete affordance.

    Hover is only tracked while no gesture is active.
    """
    if isinstance(state, (Dragging, Resizing, Connecting)):
        return None
    return hit_test(project_for_render(connections, notes), pointer)

"""Pointer-driven interaction state machine.

The current gesture is a single immutable ``InteractionState`` value. Each
handler takes the state explicitly and returns the next one, so at most one
of dragging, resizing or connecting can ever be active. Drag and resize
mutate the local notes immediately; the store is only told about the final
geometry, through the commit returned by ``pointer_up``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .constants import (
    ANCHOR_HIT_RADIUS,
    MIN_NOTE_HEIGHT,
    MIN_NOTE_WIDTH,
    SAVE_KEYS,
    SAVE_MODIFIERS,
)
from .geometry import find_anchor_at
from .types import (
    IDLE,
    Connecting,
    Dragging,
    EditSession,
    Idle,
    InteractionState,
    Note,
    NoteType,
    Point,
    PointerTarget,
    Resizing,
    Side,
    TargetKind,
)


@dataclass(frozen=True)
class GeometryCommit:
    """Final position or size of a note, to be written to the store."""

    note_id: str
    fields: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ConnectRequest:
    """A connection the user dropped onto an anchor of another note."""

    from_note_id: str
    to_note_id: str
    from_side: Side
    to_side: Side


Commit = Union[GeometryCommit, ConnectRequest]


def _find_note(notes: List[Note], note_id: str) -> Optional[Note]:
    for note in notes:
        if note.id == note_id:
            return note
    return None


def mode_name(state: InteractionState) -> str:
    if isinstance(state, Dragging):
        return "dragging"
    if isinstance(state, Resizing):
        return "resizing"
    if isinstance(state, Connecting):
        return "connecting"
    return "idle"


def active_note_id(state: InteractionState) -> str:
    """Return the note being dragged, resized or connected from, or ''."""
    if isinstance(state, (Dragging, Resizing)):
        return state.note_id
    if isinstance(state, Connecting):
        return state.from_note_id
    return ""


def pointer_down(
    state: InteractionState,
    target: PointerTarget,
    position: Point,
    notes: List[Note],
    editing: Optional[EditSession] = None,
) -> InteractionState:
    """Start a gesture if the machine is idle.

    A press while another gesture is active is ignored; the machine has to
    return to ``Idle`` through ``pointer_up`` first. A press on the note body
    drags like the drag handle. Drag and resize cannot start while a note is
    being edited.
    """
    if not isinstance(state, Idle):
        return state
    note = _find_note(notes, target.note_id)
    if note is None:
        return state

    if target.kind in (TargetKind.DRAG_HANDLE, TargetKind.NOTE_BODY):
        if editing is not None:
            return state
        return Dragging(note_id=note.id, grab_offset=position - note.origin)

    if target.kind is TargetKind.RESIZE_HANDLE:
        if editing is not None:
            return state
        return Resizing(
            note_id=note.id,
            start_pointer=position,
            start_width=note.width,
            start_height=note.height,
        )

    if target.kind is TargetKind.ANCHOR and target.side is not None:
        return Connecting(from_note_id=note.id, from_side=target.side, pointer=position)

    return state


def pointer_move(state: InteractionState, position: Point, notes: List[Note]) -> InteractionState:
    """Apply pointer motion to the active gesture.

    Dragging clamps the note origin at zero and resizing floors the size at
    the minimum note dimensions. If the note under the gesture vanished
    (for example after a refresh) the gesture is abandoned.
    """
    if isinstance(state, Dragging):
        note = _find_note(notes, state.note_id)
        if note is None:
            return IDLE
        note.x = max(0.0, position.x - state.grab_offset.x)
        note.y = max(0.0, position.y - state.grab_offset.y)
        return state

    if isinstance(state, Resizing):
        note = _find_note(notes, state.note_id)
        if note is None:
            return IDLE
        note.width = max(MIN_NOTE_WIDTH, state.start_width + (position.x - state.start_pointer.x))
        note.height = max(MIN_NOTE_HEIGHT, state.start_height + (position.y - state.start_pointer.y))
        return state

    if isinstance(state, Connecting):
        return Connecting(from_note_id=state.from_note_id, from_side=state.from_side, pointer=position)

    return state


def pointer_up(
    state: InteractionState,
    position: Point,
    notes: List[Note],
    radius: float = ANCHOR_HIT_RADIUS,
) -> Tuple[InteractionState, Optional[Commit]]:
    """Finish the active gesture.

    Returns:
        ``(Idle, commit)`` where commit is a ``GeometryCommit`` after a drag
        or resize, a ``ConnectRequest`` when a connect drag was released on
        an anchor of a different note, and None otherwise.
    """
    if isinstance(state, Dragging):
        note = _find_note(notes, state.note_id)
        if note is None:
            return IDLE, None
        return IDLE, GeometryCommit(note.id, {"x": note.x, "y": note.y})

    if isinstance(state, Resizing):
        note = _find_note(notes, state.note_id)
        if note is None:
            return IDLE, None
        return IDLE, GeometryCommit(note.id, {"width": note.width, "height": note.height})

    if isinstance(state, Connecting):
        if _find_note(notes, state.from_note_id) is None:
            return IDLE, None
        hit = find_anchor_at(notes, position, radius, exclude_note_id=state.from_note_id)
        if hit is None:
            return IDLE, None
        to_note_id, to_side = hit
        return IDLE, ConnectRequest(state.from_note_id, to_note_id, state.from_side, to_side)

    return state, None


def cancel(state: InteractionState) -> InteractionState:
    return IDLE


def drop_target(state: InteractionState, notes: List[Note], radius: float = ANCHOR_HIT_RADIUS) -> Optional[Tuple[str, Side]]:
    """Return the anchor a connect drag would land on if released now."""
    if not isinstance(state, Connecting):
        return None
    return find_anchor_at(notes, state.pointer, radius, exclude_note_id=state.from_note_id)


# --- Editing -----------------------------------------------------------------
def begin_edit(state: InteractionState, note: Optional[Note], editing: Optional[EditSession]) -> Optional[EditSession]:
    """Open an edit session on a text note when no gesture is active."""
    if note is None or note.note_type is not NoteType.TEXT:
        return editing
    if isinstance(state, (Dragging, Resizing)):
        return editing
    return EditSession(note_id=note.id, buffer=note.content)


def is_save_key(key: str, modifiers: List[str]) -> bool:
    return key in SAVE_KEYS and any(mod.lower() in SAVE_MODIFIERS for mod in modifiers)

"""Core NoteCanvasModel class.

This module provides the Qt model for the notes of one open notebook and
routes pointer, keyboard and paste events through the interaction state
machine. Edits are applied locally first and written to the store in the
background; a failed write is reported but never rolled back.
"""

from __future__ import annotations

import logging
import itertools
from typing import Any, Callable, Dict, List, Optional

from PySide6.QtCore import (
    QAbstractListModel,
    QByteArray,
    QModelIndex,
    Property,
    Qt,
    Signal,
    Slot,
)
from PySide6.QtQml import QJSValue

from . import interaction
from .bounds import compute_bounds
from .clipboard import ClipboardMixin, DataUrlImageUploader, ImageUploader
from .commits import CommitDispatcher
from .connections import ConnectionGraph, check_new_edge
from .constants import CANCEL_KEY, DELETE_KEYS, NOTE_PRESETS
from .errors import DuplicateEdgeError, NotFoundError, SelfLoopError
from .interaction import ConnectRequest, GeometryCommit
from .layout import LayoutMixin
from .render import Scene, hovered_connection_at, project_scene
from .types import (
    IDLE,
    CanvasBounds,
    Connecting,
    Connection,
    Dragging,
    EditSession,
    Idle,
    InteractionState,
    Note,
    NotebookSnapshot,
    NoteType,
    Point,
    PointerTarget,
    Resizing,
    Side,
    TargetKind,
)

logger = logging.getLogger(__name__)


class NoteCanvasModel(
    ClipboardMixin,
    LayoutMixin,
    QAbstractListModel,
):
    """Qt model exposing the notes and canvas state of one notebook."""

    IdRole = Qt.UserRole + 1
    TypeRole = Qt.UserRole + 2
    ContentRole = Qt.UserRole + 3
    XRole = Qt.UserRole + 4
    YRole = Qt.UserRole + 5
    WidthRole = Qt.UserRole + 6
    HeightRole = Qt.UserRole + 7
    CreatedAtRole = Qt.UserRole + 8
    VisualStateRole = Qt.UserRole + 9

    notesChanged = Signal()
    connectionsChanged = Signal()
    boundsChanged = Signal()
    interactionChanged = Signal()
    editingChanged = Signal()
    notebookChanged = Signal()
    warningRaised = Signal(str)
    errorOccurred = Signal(str)
    notebookMissing = Signal(str)

    def __init__(
        self,
        store,
        dispatcher: Optional[CommitDispatcher] = None,
        uploader: Optional[ImageUploader] = None,
    ):
        super().__init__()
        self._store = store
        self._dispatcher = dispatcher or CommitDispatcher(parent=self)
        self._uploader = uploader or DataUrlImageUploader()
        self._notebook_id: str = ""
        self._notebook_name: str = ""
        self._notes: List[Note] = []
        self._graph = ConnectionGraph()
        self._state: InteractionState = IDLE
        self._editing: Optional[EditSession] = None
        self._bounds: CanvasBounds = compute_bounds([])
        self._hovered_connection_id: str = ""
        self._pending_placements: Dict[int, Note] = {}
        self._placement_ids = itertools.count(1)

        self._dispatcher.committed.connect(self._on_committed)
        self._dispatcher.commitFailed.connect(self._on_commit_failed)

    # --- Qt model overrides -------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._notes)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._notes)):
            return None

        note = self._notes[index.row()]
        if role == self.IdRole:
            return note.id
        if role == self.TypeRole:
            return note.note_type.value
        if role in (self.ContentRole, Qt.DisplayRole):
            return note.content
        if role == self.XRole:
            return note.x
        if role == self.YRole:
            return note.y
        if role == self.WidthRole:
            return note.width
        if role == self.HeightRole:
            return note.height
        if role == self.CreatedAtRole:
            return note.created_at
        if role == self.VisualStateRole:
            return self._visual_state(note.id)
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return {
            self.IdRole: b"noteId",
            self.TypeRole: b"noteType",
            self.ContentRole: b"content",
            self.XRole: b"x",
            self.YRole: b"y",
            self.WidthRole: b"width",
            self.HeightRole: b"height",
            self.CreatedAtRole: b"createdAt",
            self.VisualStateRole: b"visualState",
        }

    # --- Properties exposed to QML -----------------------------------------
    @Property(str, notify=notebookChanged)
    def notebookId(self) -> str:
        return self._notebook_id

    @Property(str, notify=notebookChanged)
    def notebookName(self) -> str:
        return self._notebook_name

    @Property(int, notify=notesChanged)
    def count(self) -> int:
        return len(self._notes)

    @Property(list, notify=connectionsChanged)
    def connections(self) -> List[Dict[str, str]]:
        return [
            {
                "id": c.id,
                "fromNoteId": c.from_note_id,
                "toNoteId": c.to_note_id,
                "fromSide": c.from_side.value,
                "toSide": c.to_side.value,
            }
            for c in self._graph
        ]

    @Property(list, notify=notesChanged)
    def renderedConnections(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": r.id,
                "x1": r.from_point.x,
                "y1": r.from_point.y,
                "x2": r.to_point.x,
                "y2": r.to_point.y,
            }
            for r in self._graph.project_for_render(self._notes)
        ]

    @Property(float, notify=boundsChanged)
    def canvasWidth(self) -> float:
        return self._bounds.width

    @Property(float, notify=boundsChanged)
    def canvasHeight(self) -> float:
        return self._bounds.height

    @Property(str, notify=interactionChanged)
    def interactionMode(self) -> str:
        return interaction.mode_name(self._state)

    @Property("QVariant", notify=interactionChanged)
    def dragLine(self) -> Dict[str, float]:
        line = self.scene().drag_line
        if line is None:
            return {}
        return {"x1": line.x1, "y1": line.y1, "x2": line.x2, "y2": line.y2}

    @Property(str, notify=interactionChanged)
    def hoveredConnectionId(self) -> str:
        return self._hovered_connection_id

    @Property(str, notify=editingChanged)
    def editingNoteId(self) -> str:
        return self._editing.note_id if self._editing else ""

    @Property(str, notify=editingChanged)
    def editBuffer(self) -> str:
        return self._editing.buffer if self._editing else ""

    @Property("QVariant", notify=interactionChanged)
    def sceneData(self) -> Dict[str, Any]:
        return self.scene().to_dict()

    # --- Python-side accessors ----------------------------------------------
    @property
    def interaction_state(self) -> InteractionState:
        return self._state

    @property
    def edit_session(self) -> Optional[EditSession]:
        return self._editing

    @property
    def bounds(self) -> CanvasBounds:
        return self._bounds

    @property
    def graph(self) -> ConnectionGraph:
        return self._graph

    @property
    def dispatcher(self) -> CommitDispatcher:
        return self._dispatcher

    def getNote(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def notes(self) -> List[Note]:
        return list(self._notes)

    def scene(self) -> Scene:
        return project_scene(
            self._notes,
            self._graph,
            self._state,
            hovered_connection_id=self._hovered_connection_id or None,
            editing_note_id=self._editing.note_id if self._editing else None,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Return the state the presentation layer renders from."""
        return {
            "notes": self.notes(),
            "connections": self._graph.all(),
            "interactionState": self._state,
            "canvasBounds": self._bounds,
        }

    # --- Loading ------------------------------------------------------------
    @Slot(str, result=bool)
    def loadNotebook(self, notebook_id: str) -> bool:
        """Open a notebook, replacing whatever was shown before."""
        try:
            snapshot = self._store.fetch_notebook(notebook_id)
        except NotFoundError as exc:
            logger.warning("Notebook %s not found: %s", notebook_id, exc)
            self._clear()
            self.notebookMissing.emit(notebook_id)
            return False
        self._state = interaction.cancel(self._state)
        self._editing = None
        self._hovered_connection_id = ""
        if snapshot.notebook.id != self._notebook_id:
            self._pending_placements.clear()
        self._notebook_id = snapshot.notebook.id
        self._notebook_name = snapshot.notebook.name
        self._apply_snapshot(snapshot)
        logger.info("Notebook loaded: %s (%d notes, %d connections)",
                    self._notebook_name, len(self._notes), len(self._graph))
        self.notebookChanged.emit()
        self.interactionChanged.emit()
        self.editingChanged.emit()
        return True

    @Slot(result=bool)
    def refresh(self) -> bool:
        """Re-read the open notebook from the store.

        Notes with commits still in flight, and the note under an active
        gesture, keep their local values.
        """
        if not self._notebook_id:
            return False
        try:
            snapshot = self._store.fetch_notebook(self._notebook_id)
        except NotFoundError:
            missing = self._notebook_id
            logger.warning("Notebook %s disappeared during refresh", missing)
            self._clear()
            self.notebookMissing.emit(missing)
            return False
        self._apply_snapshot(snapshot)
        return True

    def _clear(self) -> None:
        self.beginResetModel()
        self._notes = []
        self.endResetModel()
        self._graph.replace_all([])
        self._pending_placements.clear()
        self._notebook_id = ""
        self._notebook_name = ""
        self._state = IDLE
        self._editing = None
        self._hovered_connection_id = ""
        self._bounds = compute_bounds([])
        self.notesChanged.emit()
        self.connectionsChanged.emit()
        self.boundsChanged.emit()
        self.notebookChanged.emit()
        self.interactionChanged.emit()
        self.editingChanged.emit()

    def _apply_snapshot(self, snapshot: NotebookSnapshot) -> None:
        keep_local = self._dispatcher.pending_note_ids()
        gesture_note = interaction.active_note_id(self._state)
        if isinstance(self._state, (Dragging, Resizing)):
            keep_local.add(gesture_note)
        if self._editing is not None:
            keep_local.add(self._editing.note_id)
        deleting = self._dispatcher.pending_deleted_ids()
        local = {note.id: note for note in self._notes}
        merged = []
        for note in snapshot.notes:
            if note.id in deleting:
                continue
            current = local.get(note.id)
            merged.append(current if current is not None and note.id in keep_local else note)

        self.beginResetModel()
        self._notes = merged
        self.endResetModel()
        self._graph.replace_all(c for c in snapshot.connections if c.id not in deleting)

        if gesture_note and self.getNote(gesture_note) is None:
            self._state = interaction.cancel(self._state)
            self.interactionChanged.emit()
        if self._editing is not None and self.getNote(self._editing.note_id) is None:
            self._editing = None
            self.editingChanged.emit()

        self.notesChanged.emit()
        self.connectionsChanged.emit()
        self._update_bounds()

    # --- Helpers ------------------------------------------------------------
    def _row_of(self, note_id: str) -> int:
        for row, note in enumerate(self._notes):
            if note.id == note_id:
                return row
        return -1

    def _emit_note_changed(self, note_id: str, roles: List[int]) -> None:
        row = self._row_of(note_id)
        if row < 0:
            return
        index = self.index(row, 0)
        self.dataChanged.emit(index, index, roles)

    def _visual_state(self, note_id: str) -> str:
        if isinstance(self._state, Dragging) and self._state.note_id == note_id:
            return "dragging"
        if isinstance(self._state, Resizing) and self._state.note_id == note_id:
            return "resizing"
        if self._editing is not None and self._editing.note_id == note_id:
            return "editing"
        return "normal"

    def _update_bounds(self) -> None:
        """Recompute canvas bounds unless a drag or resize is in progress."""
        if isinstance(self._state, (Dragging, Resizing)):
            return
        bounds = compute_bounds(self._notes)
        if bounds != self._bounds:
            self._bounds = bounds
            self.boundsChanged.emit()

    def _submit(
        self,
        label: str,
        call: Callable[[], Any],
        note_id: str = "",
        on_done: Optional[Callable[[Any], None]] = None,
        on_failed: Optional[Callable[[Exception], None]] = None,
        deletes: str = "",
    ) -> int:
        return self._dispatcher.submit(
            label, call, note_id=note_id, on_done=on_done, on_failed=on_failed, deletes=deletes
        )

    def _set_hovered_connection(self, connection_id: Optional[str]) -> None:
        connection_id = connection_id or ""
        if connection_id != self._hovered_connection_id:
            self._hovered_connection_id = connection_id
            self.interactionChanged.emit()

    # --- Pointer events -----------------------------------------------------
    def handle_pointer_down(self, target: PointerTarget, position: Point) -> None:
        previous = self._state
        self._state = interaction.pointer_down(self._state, target, position, self._notes, self._editing)
        if self._state is previous:
            return
        self._hovered_connection_id = ""
        note_id = interaction.active_note_id(self._state)
        logger.debug("Gesture started: %s on %s", interaction.mode_name(self._state), note_id)
        self._emit_note_changed(note_id, [self.VisualStateRole])
        self.interactionChanged.emit()

    def handle_pointer_move(self, position: Point) -> None:
        if isinstance(self._state, Idle):
            self._set_hovered_connection(
                hovered_connection_at(self._notes, self._graph, self._state, position)
            )
            return
        note_id = interaction.active_note_id(self._state)
        self._state = interaction.pointer_move(self._state, position, self._notes)
        if isinstance(self._state, Dragging):
            self._emit_note_changed(note_id, [self.XRole, self.YRole])
            self.notesChanged.emit()
        elif isinstance(self._state, Resizing):
            self._emit_note_changed(note_id, [self.WidthRole, self.HeightRole])
            self.notesChanged.emit()
        self.interactionChanged.emit()

    def handle_pointer_up(self, position: Point) -> None:
        note_id = interaction.active_note_id(self._state)
        self._state, commit = interaction.pointer_up(self._state, position, self._notes)
        self._emit_note_changed(note_id, [self.VisualStateRole])
        self.interactionChanged.emit()

        if isinstance(commit, GeometryCommit):
            self._commit_geometry(commit)
        elif isinstance(commit, ConnectRequest):
            self._request_connection(commit)
        self._update_bounds()

    def _commit_geometry(self, commit: GeometryCommit) -> None:
        fields = dict(commit.fields)
        self._submit(
            "update note",
            lambda: self._store.update_note(commit.note_id, **fields),
            note_id=commit.note_id,
        )

    def _request_connection(self, request: ConnectRequest) -> None:
        try:
            check_new_edge(
                self._graph,
                request.from_note_id,
                request.to_note_id,
                request.from_side,
                request.to_side,
            )
        except (DuplicateEdgeError, SelfLoopError) as exc:
            logger.info("Connection rejected: %s", exc)
            self.warningRaised.emit(str(exc))
            return

        notebook_id = self._notebook_id

        def on_done(connection: Connection) -> None:
            if notebook_id != self._notebook_id or self._graph.get(connection.id) is not None:
                return
            self._graph.add(connection)
            self.connectionsChanged.emit()
            self.notesChanged.emit()

        self._submit(
            "create connection",
            lambda: self._store.create_connection(
                request.from_note_id,
                request.to_note_id,
                request.from_side,
                request.to_side,
                notebook_id,
            ),
            on_done=on_done,
        )

    @Slot(str, str, str, float, float)
    def onPointerDown(self, kind: str, note_id: str, side: str, x: float, y: float) -> None:
        """Press on a drag handle, resize handle or anchor of ``note_id``."""
        try:
            target = PointerTarget(
                kind=TargetKind(kind),
                note_id=note_id,
                side=Side(side) if side else None,
            )
        except ValueError:
            logger.warning("Ignoring pointer down on unknown target %r/%r", kind, side)
            return
        self.handle_pointer_down(target, Point(x, y))

    @Slot(float, float)
    def onPointerMove(self, x: float, y: float) -> None:
        self.handle_pointer_move(Point(x, y))

    @Slot(float, float)
    def onPointerUp(self, x: float, y: float) -> None:
        self.handle_pointer_up(Point(x, y))

    # --- Keyboard -----------------------------------------------------------
    @Slot(str, list, result=bool)
    def onKeyDown(self, key: str, modifiers: List[str]) -> bool:
        """Handle a key press; returns True when the key was consumed."""
        modifiers = list(modifiers or [])
        if self._editing is not None:
            if interaction.is_save_key(key, modifiers):
                return self.saveEdit()
            if key == CANCEL_KEY:
                self.cancelEdit()
                return True
            return False

        if key in DELETE_KEYS and self._hovered_connection_id:
            return self.deleteConnection(self._hovered_connection_id)

        if key == CANCEL_KEY and isinstance(self._state, Connecting):
            self._state = interaction.cancel(self._state)
            self.interactionChanged.emit()
            return True
        return False

    # --- Editing ------------------------------------------------------------
    @Slot(str, result=bool)
    def onDoubleActivate(self, note_id: str) -> bool:
        """Open the editor on a text note."""
        session = interaction.begin_edit(self._state, self.getNote(note_id), self._editing)
        if session is self._editing:
            return False
        previous = self._editing.note_id if self._editing else ""
        self._editing = session
        self._emit_note_changed(previous, [self.VisualStateRole])
        self._emit_note_changed(note_id, [self.VisualStateRole])
        self.editingChanged.emit()
        return True

    @Slot(str)
    def setEditBuffer(self, text: str) -> None:
        if self._editing is None or self._editing.buffer == text:
            return
        self._editing = EditSession(note_id=self._editing.note_id, buffer=text)
        self.editingChanged.emit()

    @Slot(result=bool)
    def saveEdit(self) -> bool:
        """Apply the edit buffer locally and write it behind."""
        session = self._editing
        if session is None:
            return False
        self._editing = None
        note = self.getNote(session.note_id)
        if note is None:
            self.editingChanged.emit()
            return False
        note.content = session.buffer
        self._emit_note_changed(note.id, [self.ContentRole, self.VisualStateRole])
        self.notesChanged.emit()
        self.editingChanged.emit()
        self._submit(
            "save note",
            lambda: self._store.update_note(session.note_id, content=session.buffer),
            note_id=session.note_id,
        )
        return True

    @Slot()
    def cancelEdit(self) -> None:
        if self._editing is None:
            return
        note_id = self._editing.note_id
        self._editing = None
        self._emit_note_changed(note_id, [self.VisualStateRole])
        self.editingChanged.emit()

    # --- Paste --------------------------------------------------------------
    @Slot("QVariant", result=bool)
    def onPasteImage(self, image_bytes: Any) -> bool:
        """Upload a pasted image and insert it as a new image note."""
        if self._editing is not None:
            logger.debug("Paste ignored while editing")
            return False
        if isinstance(image_bytes, QJSValue):
            image_bytes = image_bytes.toVariant()
        if isinstance(image_bytes, QByteArray):
            image_bytes = image_bytes.data()
        payload = bytes(image_bytes or b"")
        if not payload:
            return False
        return self._create_note(NoteType.IMAGE, lambda: self._uploader.upload(payload), "upload image")

    @Slot(str, result=bool)
    def onPasteText(self, text: str) -> bool:
        if self._editing is not None:
            logger.debug("Paste ignored while editing")
            return False
        content = (text or "").strip()
        if not content:
            return False
        return self.createNote(NoteType.TEXT.value, content)

    # --- Note and connection CRUD -------------------------------------------
    @Slot(str, str, result=bool)
    def createNote(self, note_type: str, content: str) -> bool:
        """Add a note at the next insert position."""
        try:
            kind = NoteType(note_type)
        except ValueError:
            self.errorOccurred.emit(f"Unknown note type: {note_type}")
            return False
        if not content:
            return False
        return self._create_note(kind, lambda: content, "create note")

    def _create_note(self, note_type: NoteType, content_source: Callable[[], str], label: str) -> bool:
        if not self._notebook_id:
            self.errorOccurred.emit("No notebook is open")
            return False
        notebook_id = self._notebook_id
        x, y = self._insert_position()
        preset = NOTE_PRESETS[note_type.value]
        placement_id = next(self._placement_ids)
        self._pending_placements[placement_id] = Note(
            id="",
            note_type=note_type,
            content="",
            x=x,
            y=y,
            width=preset["width"],
            height=preset["height"],
            notebook_id=notebook_id,
        )

        def call() -> Note:
            return self._store.create_note(note_type, content_source(), notebook_id, x=x, y=y)

        def on_failed(exc: Exception) -> None:
            self._pending_placements.pop(placement_id, None)

        def on_done(note: Note) -> None:
            self._pending_placements.pop(placement_id, None)
            if notebook_id != self._notebook_id or self.getNote(note.id) is not None:
                return
            row = len(self._notes)
            self.beginInsertRows(QModelIndex(), row, row)
            self._notes.append(note)
            self.endInsertRows()
            self.notesChanged.emit()
            self._update_bounds()

        self._submit(label, call, on_done=on_done, on_failed=on_failed)
        return True

    @Slot(str, result=bool)
    def deleteNote(self, note_id: str) -> bool:
        """Remove a note locally; its connections drop out of the render.

        Once the store confirms the delete, which cascades to connections,
        the note's edges are removed from the local graph as well.
        """
        row = self._row_of(note_id)
        if row < 0:
            return False
        if interaction.active_note_id(self._state) == note_id:
            self._state = interaction.cancel(self._state)
            self.interactionChanged.emit()
        if self._editing is not None and self._editing.note_id == note_id:
            self._editing = None
            self.editingChanged.emit()
        self.beginRemoveRows(QModelIndex(), row, row)
        del self._notes[row]
        self.endRemoveRows()
        self.notesChanged.emit()
        self._update_bounds()
        notebook_id = self._notebook_id

        def on_done(_result: Any) -> None:
            if notebook_id != self._notebook_id:
                return
            if self._graph.remove_touching(note_id):
                self.connectionsChanged.emit()

        self._submit(
            "delete note",
            lambda: self._store.delete_note(note_id),
            note_id=note_id,
            on_done=on_done,
            deletes=note_id,
        )
        return True

    @Slot(str, result=bool)
    def deleteConnection(self, connection_id: str) -> bool:
        if self._graph.get(connection_id) is None:
            return False
        self._graph.delete(connection_id)
        if self._hovered_connection_id == connection_id:
            self._hovered_connection_id = ""
            self.interactionChanged.emit()
        self.connectionsChanged.emit()
        self.notesChanged.emit()
        self._submit(
            "delete connection",
            lambda: self._store.delete_connection(connection_id),
            deletes=connection_id,
        )
        return True

    # --- Commit outcomes ----------------------------------------------------
    def _on_committed(self, req_id: int, label: str, result: Any) -> None:
        logger.debug("Commit #%d (%s) acknowledged", req_id, label)

    def _on_commit_failed(self, req_id: int, label: str, exc: Exception) -> None:
        if isinstance(exc, (DuplicateEdgeError, SelfLoopError)):
            self.warningRaised.emit(str(exc))
            return
        self.errorOccurred.emit(f"Failed to {label}: {exc}")

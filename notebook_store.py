"""Notebook persistence for NoteCanvas.

This module provides the key-value store that owns notebooks, notes and
connections, plus the QSettings-backed user settings that remember which
store file and notebook were last open.

Store files are JSON documents:
- v1: notebooks, notes and connections as flat lists keyed by id
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from PySide6.QtCore import QSettings, QStandardPaths

from notecanvas.bounds import compute_bounds
from notecanvas.constants import (
    APP_NAME,
    DEFAULT_NOTE_HEIGHT,
    DEFAULT_NOTE_WIDTH,
    NOTE_PRESETS,
    ORGANIZATION_NAME,
)
from notecanvas.connections import check_new_edge
from notecanvas.errors import NotFoundError
from notecanvas.layout import default_target_band, place_new_note
from notecanvas.types import Connection, Note, Notebook, NotebookSnapshot, NoteType, Side, utc_now

logger = logging.getLogger(__name__)

STORE_VERSION = "1"
UPDATABLE_NOTE_FIELDS = ("x", "y", "width", "height", "content")


def default_store_path() -> Path:
    """Return the store file inside the per-user application data directory."""
    base = QStandardPaths.writableLocation(QStandardPaths.AppDataLocation)
    if not base:
        base = str(Path.home() / ".notecanvas")
    return Path(base) / "notebooks.json"


def _new_id() -> str:
    return uuid.uuid4().hex


class NotebookStore:
    """Thread-safe in-memory store of notebooks, notes and connections.

    Write-behind commits call into the store from worker threads, so every
    public method takes the store lock. Returned objects are copies; callers
    never share mutable state with the store.
    """

    def __init__(self, path: Optional[os.PathLike] = None, autosave: bool = False):
        self._lock = threading.RLock()
        self._notebooks: Dict[str, Notebook] = {}
        self._notes: Dict[str, Note] = {}
        self._connections: Dict[str, Connection] = {}
        self._path: Optional[Path] = Path(path) if path is not None else None
        self._autosave = autosave and self._path is not None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _changed(self) -> None:
        if self._autosave:
            self.save()

    # --- Notebooks ----------------------------------------------------------
    def list_notebooks(self) -> List[Dict[str, Any]]:
        """Return notebooks newest first, each with its note count."""
        with self._lock:
            counts: Dict[str, int] = {}
            for note in self._notes.values():
                counts[note.notebook_id] = counts.get(note.notebook_id, 0) + 1
            ordered = sorted(self._notebooks.values(), key=lambda nb: nb.created_at, reverse=True)
            return [
                {
                    "id": nb.id,
                    "name": nb.name,
                    "subtitle": nb.subtitle,
                    "coverImage": nb.cover_image,
                    "createdAt": nb.created_at,
                    "noteCount": counts.get(nb.id, 0),
                }
                for nb in ordered
            ]

    def create_notebook(self, name: str, subtitle: str = "", cover_image: str = "") -> Notebook:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Name is required")
        notebook = Notebook(id=_new_id(), name=name.strip(), subtitle=subtitle, cover_image=cover_image)
        with self._lock:
            self._notebooks[notebook.id] = notebook
            self._changed()
        logger.info("Notebook created: %s (%s)", notebook.name, notebook.id)
        return replace(notebook)

    def delete_notebook(self, notebook_id: str) -> None:
        """Delete a notebook with all of its notes and their connections."""
        with self._lock:
            if notebook_id not in self._notebooks:
                raise NotFoundError(f"Notebook not found: {notebook_id}")
            note_ids = {n.id for n in self._notes.values() if n.notebook_id == notebook_id}
            self._connections = {
                cid: c for cid, c in self._connections.items()
                if c.from_note_id not in note_ids and c.to_note_id not in note_ids
            }
            for note_id in note_ids:
                del self._notes[note_id]
            del self._notebooks[notebook_id]
            self._changed()
        logger.info("Notebook deleted: %s (%d notes)", notebook_id, len(note_ids))

    def fetch_notebook(self, notebook_id: str) -> NotebookSnapshot:
        """Return a notebook with its notes in creation order and its connections.

        Raises:
            NotFoundError: If the notebook does not exist.
        """
        with self._lock:
            notebook = self._notebooks.get(notebook_id)
            if notebook is None:
                raise NotFoundError(f"Notebook not found: {notebook_id}")
            notes = sorted(
                (n for n in self._notes.values() if n.notebook_id == notebook_id),
                key=lambda n: n.created_at,
            )
            note_ids = {n.id for n in notes}
            connections = [
                c for c in self._connections.values()
                if c.from_note_id in note_ids or c.to_note_id in note_ids
            ]
            return NotebookSnapshot(
                notebook=replace(notebook),
                notes=[replace(n) for n in notes],
                connections=list(connections),
            )

    # --- Notes --------------------------------------------------------------
    def create_note(
        self,
        note_type: NoteType,
        content: str,
        notebook_id: str,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> Note:
        """Create a note; missing coordinates are chosen by the layout planner."""
        if not content:
            raise ValueError("Content is required")
        note_type = NoteType(note_type)
        preset = NOTE_PRESETS[note_type.value]
        with self._lock:
            if notebook_id not in self._notebooks:
                raise NotFoundError(f"Notebook not found: {notebook_id}")
            if x is None or y is None:
                siblings = [n for n in self._notes.values() if n.notebook_id == notebook_id]
                band = default_target_band(compute_bounds(siblings).height)
                planned_x, planned_y = place_new_note(siblings, band)
                x = planned_x if x is None else x
                y = planned_y if y is None else y
            note = Note(
                id=_new_id(),
                note_type=note_type,
                content=content,
                x=float(x),
                y=float(y),
                width=preset["width"],
                height=preset["height"],
                notebook_id=notebook_id,
            )
            self._notes[note.id] = note
            self._changed()
            return replace(note)

    def get_note(self, note_id: str) -> Note:
        with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                raise NotFoundError(f"Note not found: {note_id}")
            return replace(note)

    def update_note(self, note_id: str, **fields: Any) -> Note:
        """Update only the given fields of a note.

        Raises:
            ValueError: For fields that cannot be updated.
            NotFoundError: If the note does not exist.
        """
        unknown = set(fields) - set(UPDATABLE_NOTE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update note fields: {sorted(unknown)}")
        with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                raise NotFoundError(f"Note not found: {note_id}")
            for name, value in fields.items():
                if name == "content":
                    if isinstance(value, str):
                        note.content = value
                elif isinstance(value, (int, float)):
                    setattr(note, name, float(value))
            self._changed()
            return replace(note)

    def delete_note(self, note_id: str) -> None:
        with self._lock:
            if note_id not in self._notes:
                raise NotFoundError(f"Note not found: {note_id}")
            del self._notes[note_id]
            self._connections = {
                cid: c for cid, c in self._connections.items()
                if c.from_note_id != note_id and c.to_note_id != note_id
            }
            self._changed()

    def notebook_of(self, note_id: str) -> Optional[str]:
        with self._lock:
            note = self._notes.get(note_id)
            return note.notebook_id if note else None

    # --- Connections --------------------------------------------------------
    def create_connection(
        self,
        from_note_id: str,
        to_note_id: str,
        from_side: Side,
        to_side: Side,
        notebook_id: str,
    ) -> Connection:
        """Store a new connection.

        Raises:
            DuplicateEdgeError: If the identical connection already exists.
            SelfLoopError: If both endpoints are the same note.
            NotFoundError: If the notebook or either note is unknown.
        """
        from_side = Side(from_side)
        to_side = Side(to_side)
        with self._lock:
            if notebook_id not in self._notebooks:
                raise NotFoundError(f"Notebook not found: {notebook_id}")
            for note_id in (from_note_id, to_note_id):
                if note_id not in self._notes:
                    raise NotFoundError(f"Note not found: {note_id}")
            check_new_edge(self._connections.values(), from_note_id, to_note_id, from_side, to_side)
            connection = Connection(
                id=_new_id(),
                from_note_id=from_note_id,
                to_note_id=to_note_id,
                from_side=from_side,
                to_side=to_side,
            )
            self._connections[connection.id] = connection
            self._changed()
            return connection

    def delete_connection(self, connection_id: str) -> None:
        with self._lock:
            if self._connections.pop(connection_id, None) is not None:
                self._changed()

    # --- Serialization ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Serialize the whole store to a dictionary for saving."""
        with self._lock:
            return {
                "version": STORE_VERSION,
                "saved_at": utc_now(),
                "notebooks": [
                    {
                        "id": nb.id,
                        "name": nb.name,
                        "subtitle": nb.subtitle,
                        "cover_image": nb.cover_image,
                        "created_at": nb.created_at,
                    }
                    for nb in self._notebooks.values()
                ],
                "notes": [
                    {
                        "id": n.id,
                        "notebook_id": n.notebook_id,
                        "type": n.note_type.value,
                        "content": n.content,
                        "x": n.x,
                        "y": n.y,
                        "width": n.width,
                        "height": n.height,
                        "created_at": n.created_at,
                    }
                    for n in self._notes.values()
                ],
                "connections": [
                    {
                        "id": c.id,
                        "from_note_id": c.from_note_id,
                        "to_note_id": c.to_note_id,
                        "from_side": c.from_side.value,
                        "to_side": c.to_side.value,
                    }
                    for c in self._connections.values()
                ],
            }

    def from_dict(self, data: Dict[str, Any]) -> None:
        """Replace the store contents with data produced by ``to_dict``."""
        notebooks: Dict[str, Notebook] = {}
        for nb_data in data.get("notebooks", []):
            notebook = Notebook(
                id=nb_data["id"],
                name=nb_data.get("name", ""),
                subtitle=nb_data.get("subtitle", ""),
                cover_image=nb_data.get("cover_image", ""),
                created_at=nb_data.get("created_at", utc_now()),
            )
            notebooks[notebook.id] = notebook

        notes: Dict[str, Note] = {}
        for note_data in data.get("notes", []):
            try:
                note_type = NoteType(note_data.get("type", "text"))
            except ValueError:
                note_type = NoteType.TEXT
            note = Note(
                id=note_data["id"],
                note_type=note_type,
                content=note_data.get("content", ""),
                x=float(note_data.get("x", 0.0)),
                y=float(note_data.get("y", 0.0)),
                width=float(note_data.get("width", DEFAULT_NOTE_WIDTH)),
                height=float(note_data.get("height", DEFAULT_NOTE_HEIGHT)),
                notebook_id=note_data.get("notebook_id", ""),
                created_at=note_data.get("created_at", utc_now()),
            )
            notes[note.id] = note

        connections: Dict[str, Connection] = {}
        for conn_data in data.get("connections", []):
            connection = Connection(
                id=conn_data["id"],
                from_note_id=conn_data.get("from_note_id", ""),
                to_note_id=conn_data.get("to_note_id", ""),
                from_side=Side(conn_data.get("from_side", "right")),
                to_side=Side(conn_data.get("to_side", "left")),
            )
            connections[connection.id] = connection

        with self._lock:
            self._notebooks = notebooks
            self._notes = notes
            self._connections = connections

    def save(self, path: Optional[os.PathLike] = None) -> Path:
        target = Path(path) if path is not None else self._path
        if target is None:
            raise ValueError("No store path specified")
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = self.to_dict()
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, target)
        logger.debug("Store saved to %s", target)
        return target

    @classmethod
    def load(cls, path: os.PathLike, autosave: bool = False) -> "NotebookStore":
        """Open a store file, starting empty when the file does not exist yet.

        Raises:
            ValueError: If the file is not a valid store document.
        """
        store = cls(path, autosave=autosave)
        file_path = Path(path)
        if not file_path.exists():
            logger.info("Store file %s does not exist yet; starting empty", file_path)
            return store
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            store.from_dict(data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid store file format: {e}") from e
        except (KeyError, TypeError) as e:
            raise ValueError(f"Corrupted store file: {e}") from e
        logger.info("Store loaded from %s", file_path)
        return store


class StoreSettings:
    """User settings remembered between sessions."""

    def __init__(self, settings: Optional[QSettings] = None):
        self._settings = settings or QSettings(ORGANIZATION_NAME, APP_NAME)

    def store_path(self) -> Path:
        stored = self._settings.value("storePath", "")
        if isinstance(stored, str) and stored:
            return Path(stored)
        return default_store_path()

    def set_store_path(self, path: os.PathLike) -> None:
        self._settings.setValue("storePath", str(path))
        self._settings.sync()

    def last_notebook_id(self) -> str:
        stored = self._settings.value("lastNotebookId", "")
        return stored if isinstance(stored, str) else ""

    def set_last_notebook_id(self, notebook_id: str) -> None:
        self._settings.setValue("lastNotebookId", notebook_id)
        self._settings.sync()

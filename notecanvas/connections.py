"""In-memory connection graph between note anchors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import count
from typing import Callable, Dict, Iterable, List, Optional

from .constants import CONNECTION_HIT_BAND
from .errors import DuplicateEdgeError, SelfLoopError
from .geometry import anchor_point, distance_to_segment
from .types import Connection, Note, Point, Side

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedConnection:
    """Endpoints of a connection resolved against current note geometry."""

    id: str
    from_point: Point
    to_point: Point


def check_new_edge(existing: Iterable[Connection], from_note_id: str, to_note_id: str, from_side: Side, to_side: Side) -> None:
    """Raise if the edge would be a self-loop or duplicate an existing one."""
    if from_note_id == to_note_id:
        raise SelfLoopError(f"Cannot connect note {from_note_id} to itself")
    key = (from_note_id, to_note_id, from_side, to_side)
    for connection in existing:
        if connection.key == key:
            raise DuplicateEdgeError("Connection already exists")


def project_for_render(connections: Iterable[Connection], notes: Iterable[Note]) -> List[RenderedConnection]:
    """Resolve connection endpoints, dropping any whose note is gone."""
    note_by_id: Dict[str, Note] = {note.id: note for note in notes}
    rendered = []
    for connection in connections:
        from_note = note_by_id.get(connection.from_note_id)
        to_note = note_by_id.get(connection.to_note_id)
        if from_note is None or to_note is None:
            continue
        rendered.append(RenderedConnection(
            id=connection.id,
            from_point=anchor_point(from_note, connection.from_side),
            to_point=anchor_point(to_note, connection.to_side),
        ))
    return rendered


def hit_test(rendered: Iterable[RenderedConnection], pointer: Point, band: float = CONNECTION_HIT_BAND) -> Optional[str]:
    """Return the id of the first connection whose segment is within ``band``."""
    for connection in rendered:
        if distance_to_segment(pointer, connection.from_point, connection.to_point) <= band:
            return connection.id
    return None


class ConnectionGraph:
    """Directed edges between ``(note_id, side)`` anchors.

    The graph holds no note geometry; endpoints are resolved against the
    current notes every time it is projected for rendering. Connections whose
    notes have been removed stay in the graph and are simply not rendered.
    """

    def __init__(self, connections: Optional[Iterable[Connection]] = None, id_factory: Optional[Callable[[], str]] = None):
        self._connections: List[Connection] = list(connections or [])
        self._id_source = count()
        self._id_factory = id_factory or self._next_id

    def _next_id(self) -> str:
        return f"connection_{next(self._id_source)}"

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self):
        return iter(list(self._connections))

    def all(self) -> List[Connection]:
        return list(self._connections)

    def get(self, connection_id: str) -> Optional[Connection]:
        for connection in self._connections:
            if connection.id == connection_id:
                return connection
        return None

    def exists(self, from_note_id: str, to_note_id: str, from_side: Side, to_side: Side) -> bool:
        key = (from_note_id, to_note_id, from_side, to_side)
        return any(connection.key == key for connection in self._connections)

    def create(self, from_note_id: str, to_note_id: str, from_side: Side, to_side: Side) -> Connection:
        """Add a new edge.

        Raises:
            SelfLoopError: If both endpoints are the same note.
            DuplicateEdgeError: If the identical 4-tuple is already stored.
        """
        check_new_edge(self._connections, from_note_id, to_note_id, from_side, to_side)
        connection = Connection(
            id=self._id_factory(),
            from_note_id=from_note_id,
            to_note_id=to_note_id,
            from_side=from_side,
            to_side=to_side,
        )
        self._connections.append(connection)
        logger.debug("Connection %s created: %s.%s -> %s.%s", connection.id,
                     from_note_id, from_side.value, to_note_id, to_side.value)
        return connection

    def add(self, connection: Connection) -> None:
        """Insert a connection that already has an id (e.g. from the store)."""
        check_new_edge(self._connections, connection.from_note_id, connection.to_note_id,
                       connection.from_side, connection.to_side)
        self._connections.append(connection)

    def delete(self, connection_id: str) -> None:
        self._connections = [c for c in self._connections if c.id != connection_id]

    def remove_touching(self, note_id: str) -> List[Connection]:
        """Remove and return every connection with ``note_id`` as an endpoint."""
        removed = [c for c in self._connections if note_id in (c.from_note_id, c.to_note_id)]
        if removed:
            self._connections = [c for c in self._connections if c not in removed]
        return removed

    def replace_all(self, connections: Iterable[Connection]) -> None:
        self._connections = list(connections)

    def for_notebook(self, notebook_id: str, note_owner: Callable[[str], Optional[str]]) -> List[Connection]:
        """Return connections with at least one endpoint in ``notebook_id``.

        Args:
            notebook_id: Notebook to filter by.
            note_owner: Maps a note id to its notebook id, or None if unknown.
        """
        return [
            c for c in self._connections
            if note_owner(c.from_note_id) == notebook_id or note_owner(c.to_note_id) == notebook_id
        ]

    def project_for_render(self, notes: Iterable[Note]) -> List[RenderedConnection]:
        return project_for_render(self._connections, notes)

"""NoteCanvas: free-form notebook canvases built with PySide6.

Notes are placed, dragged, resized and wired together with side-anchored
connections. Edits apply locally first and are written to the notebook
store in the background.
"""

from .commits import CommitDispatcher
from .connections import ConnectionGraph
from .constants import NOTE_PRESETS
from .errors import (
    CanvasError,
    CommitError,
    DuplicateEdgeError,
    NotFoundError,
    SelfLoopError,
    UploadError,
)
from .model import NoteCanvasModel
from .notebooks import NotebookListModel
from .render import Scene, project_scene
from .types import (
    CanvasBounds,
    Connection,
    Note,
    Notebook,
    NotebookSnapshot,
    NoteType,
    Point,
    Side,
)

__all__ = [
    "CanvasBounds",
    "CanvasError",
    "CommitDispatcher",
    "CommitError",
    "Connection",
    "ConnectionGraph",
    "DuplicateEdgeError",
    "NOTE_PRESETS",
    "Note",
    "NoteCanvasModel",
    "NoteType",
    "Notebook",
    "NotebookListModel",
    "NotebookSnapshot",
    "NotFoundError",
    "Point",
    "Scene",
    "SelfLoopError",
    "Side",
    "UploadError",
    "project_scene",
]

"""Exceptions raised by the canvas engine and its collaborators."""

from __future__ import annotations


class CanvasError(Exception):
    """Base class for NoteCanvas failures."""


class DuplicateEdgeError(CanvasError):
    """Raised when an identical (from, to, from_side, to_side) connection exists."""


class SelfLoopError(CanvasError):
    """Raised when a connection would start and end on the same note."""


class NotFoundError(CanvasError):
    """Raised when a notebook, note or connection id is unknown to the store."""


class CommitError(CanvasError):
    """Raised when a write-behind commit to the store fails."""


class UploadError(CanvasError):
    """Raised when pasted image data cannot be turned into an image URL."""

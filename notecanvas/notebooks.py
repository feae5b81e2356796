"""Notebook list shown on the navigation screen."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from PySide6.QtCore import QAbstractListModel, QModelIndex, Property, Qt, Signal, Slot

from .errors import NotFoundError

logger = logging.getLogger(__name__)


class NotebookListModel(QAbstractListModel):
    """Qt model listing every notebook in the store, newest first."""

    IdRole = Qt.UserRole + 1
    NameRole = Qt.UserRole + 2
    SubtitleRole = Qt.UserRole + 3
    CoverImageRole = Qt.UserRole + 4
    CreatedAtRole = Qt.UserRole + 5
    NoteCountRole = Qt.UserRole + 6

    _ROLE_KEYS = {
        IdRole: "id",
        NameRole: "name",
        SubtitleRole: "subtitle",
        CoverImageRole: "coverImage",
        CreatedAtRole: "createdAt",
        NoteCountRole: "noteCount",
    }

    countChanged = Signal()
    notebookCreated = Signal(str, arguments=["notebookId"])
    notebookDeleted = Signal(str, arguments=["notebookId"])
    errorOccurred = Signal(str)

    def __init__(self, store):
        super().__init__()
        self._store = store
        self._rows: List[Dict[str, Any]] = []
        self.refresh()

    def rowCount(self, parent: QModelIndex | None = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._rows)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None
        row = self._rows[index.row()]
        if role == Qt.DisplayRole:
            return row["name"]
        key = self._ROLE_KEYS.get(role)
        return row[key] if key else None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        names = {role: key.encode() for role, key in self._ROLE_KEYS.items()}
        names[self.IdRole] = b"notebookId"
        return names

    @Property(int, notify=countChanged)
    def count(self) -> int:
        return len(self._rows)

    @Slot(int, result="QVariant")
    def get(self, row: int) -> Dict[str, Any]:
        if 0 <= row < len(self._rows):
            return dict(self._rows[row])
        return {}

    @Slot()
    def refresh(self) -> None:
        self.beginResetModel()
        self._rows = self._store.list_notebooks()
        self.endResetModel()
        self.countChanged.emit()

    @Slot(str, str, str, result=str)
    def createNotebook(self, name: str, subtitle: str = "", cover_image: str = "") -> str:
        """Create a notebook and return its id, or '' on failure."""
        try:
            notebook = self._store.create_notebook(name, subtitle, cover_image)
        except (ValueError, OSError) as e:
            error_msg = f"Failed to create notebook: {e}"
            logger.warning(error_msg)
            self.errorOccurred.emit(error_msg)
            return ""
        self.refresh()
        self.notebookCreated.emit(notebook.id)
        return notebook.id

    @Slot(str, result=bool)
    def deleteNotebook(self, notebook_id: str) -> bool:
        try:
            self._store.delete_notebook(notebook_id)
        except (NotFoundError, OSError) as e:
            error_msg = f"Failed to delete notebook: {e}"
            logger.warning(error_msg)
            self.errorOccurred.emit(error_msg)
            return False
        self.refresh()
        self.notebookDeleted.emit(notebook_id)
        return True

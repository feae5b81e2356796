"""Shared pytest fixtures for the Qt application and a seeded notebook store."""

import os
import sys

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QCoreApplication
from PySide6.QtGui import QGuiApplication

from notebook_store import NotebookStore
from notecanvas.commits import CommitDispatcher
from notecanvas.model import NoteCanvasModel


@pytest.fixture(scope="session")
def app():
    """Provide a single QGuiApplication for all tests."""
    instance = QGuiApplication.instance()
    if instance is None:
        instance = QGuiApplication(sys.argv)

    yield instance

    # Avoid PySide shutdown crashes when clipboard owns QMimeData.
    clipboard = QGuiApplication.clipboard()
    if clipboard is not None:
        clipboard.clear()

    QCoreApplication.processEvents()


@pytest.fixture
def store():
    return NotebookStore()


@pytest.fixture
def notebook(store):
    return store.create_notebook("Research", "Spring term")


@pytest.fixture
def canvas_model(app, store, notebook):
    """A model over an empty notebook whose commits run inline."""
    model = NoteCanvasModel(store, dispatcher=CommitDispatcher(synchronous=True))
    model.loadNotebook(notebook.id)
    return model

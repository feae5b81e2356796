"""Tests for the notebook store and its settings."""

import json

import pytest
from PySide6.QtCore import QSettings

from notebook_store import STORE_VERSION, NotebookStore, StoreSettings
from notecanvas.errors import DuplicateEdgeError, NotFoundError, SelfLoopError
from notecanvas.types import NoteType, Side


class TestNotebooks:
    def test_create_and_fetch_empty(self, store):
        notebook = store.create_notebook("  Ideas  ", "misc")
        snapshot = store.fetch_notebook(notebook.id)
        assert snapshot.notebook.name == "Ideas"
        assert snapshot.notebook.subtitle == "misc"
        assert snapshot.notes == []
        assert snapshot.connections == []

    def test_blank_name_rejected(self, store):
        with pytest.raises(ValueError):
            store.create_notebook("   ")

    def test_fetch_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.fetch_notebook("missing")

    def test_list_newest_first_with_counts(self, store):
        store.from_dict({
            "notebooks": [
                {"id": "old", "name": "Old", "created_at": "2024-01-01T00:00:00+00:00"},
                {"id": "new", "name": "New", "created_at": "2024-06-01T00:00:00+00:00"},
            ],
            "notes": [
                {"id": "n1", "notebook_id": "old", "type": "text", "content": "x"},
                {"id": "n2", "notebook_id": "old", "type": "text", "content": "y"},
            ],
        })
        listed = store.list_notebooks()
        assert [(nb["id"], nb["noteCount"]) for nb in listed] == [("new", 0), ("old", 2)]

    def test_delete_cascades(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        b = store.create_note(NoteType.TEXT, "b", notebook.id)
        store.create_connection(a.id, b.id, Side.RIGHT, Side.LEFT, notebook.id)
        store.delete_notebook(notebook.id)
        assert store.list_notebooks() == []
        assert store.to_dict()["notes"] == []
        assert store.to_dict()["connections"] == []
        with pytest.raises(NotFoundError):
            store.delete_notebook(notebook.id)


class TestNotes:
    def test_create_places_with_layout_planner(self, store, notebook):
        first = store.create_note(NoteType.TEXT, "first", notebook.id)
        assert (first.x, first.y) == (100.0, 300.0)
        # the first note grows the canvas to 800 high, moving the band down
        second = store.create_note(NoteType.TEXT, "second", notebook.id)
        assert (second.x, second.y) == (100.0, 500.0)

    def test_explicit_position(self, store, notebook):
        note = store.create_note("image", "data:image/png;base64,AA==", notebook.id, x=10, y=20)
        assert note.note_type is NoteType.IMAGE
        assert (note.x, note.y) == (10.0, 20.0)

    def test_empty_content_rejected(self, store, notebook):
        with pytest.raises(ValueError):
            store.create_note(NoteType.TEXT, "", notebook.id)

    def test_unknown_notebook(self, store):
        with pytest.raises(NotFoundError):
            store.create_note(NoteType.TEXT, "x", "missing")

    def test_fetch_returns_creation_order(self, store, notebook):
        ids = [store.create_note(NoteType.TEXT, str(i), notebook.id).id for i in range(3)]
        assert [n.id for n in store.fetch_notebook(notebook.id).notes] == ids

    def test_partial_update(self, store, notebook):
        note = store.create_note(NoteType.TEXT, "x", notebook.id)
        updated = store.update_note(note.id, x=5, width=400)
        assert (updated.x, updated.y, updated.width, updated.height) == (5.0, note.y, 400.0, note.height)
        assert store.update_note(note.id, content="new").content == "new"

    def test_update_rejects_unknown_fields(self, store, notebook):
        note = store.create_note(NoteType.TEXT, "x", notebook.id)
        with pytest.raises(ValueError):
            store.update_note(note.id, notebook_id="other")

    def test_returned_notes_are_copies(self, store, notebook):
        note = store.create_note(NoteType.TEXT, "x", notebook.id)
        note.x = 9999.0
        assert store.get_note(note.id).x != 9999.0

    def test_delete_note_cascades_connections(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        b = store.create_note(NoteType.TEXT, "b", notebook.id)
        store.create_connection(a.id, b.id, Side.RIGHT, Side.LEFT, notebook.id)
        store.delete_note(b.id)
        assert store.fetch_notebook(notebook.id).connections == []
        with pytest.raises(NotFoundError):
            store.get_note(b.id)


class TestConnections:
    def test_duplicate_rejected(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        b = store.create_note(NoteType.TEXT, "b", notebook.id)
        store.create_connection(a.id, b.id, "right", "left", notebook.id)
        with pytest.raises(DuplicateEdgeError):
            store.create_connection(a.id, b.id, Side.RIGHT, Side.LEFT, notebook.id)
        assert len(store.fetch_notebook(notebook.id).connections) == 1

    def test_self_loop_rejected(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        with pytest.raises(SelfLoopError):
            store.create_connection(a.id, a.id, Side.TOP, Side.BOTTOM, notebook.id)

    def test_missing_endpoint(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        with pytest.raises(NotFoundError):
            store.create_connection(a.id, "gone", Side.TOP, Side.BOTTOM, notebook.id)

    def test_delete_is_idempotent(self, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        b = store.create_note(NoteType.TEXT, "b", notebook.id)
        connection = store.create_connection(a.id, b.id, Side.RIGHT, Side.LEFT, notebook.id)
        store.delete_connection(connection.id)
        store.delete_connection(connection.id)
        assert store.fetch_notebook(notebook.id).connections == []


class TestPersistence:
    def test_save_and_load(self, tmp_path, store, notebook):
        a = store.create_note(NoteType.TEXT, "a", notebook.id)
        b = store.create_note(NoteType.IMAGE, "data:image/png;base64,AA==", notebook.id)
        store.create_connection(a.id, b.id, Side.BOTTOM, Side.TOP, notebook.id)
        path = store.save(tmp_path / "store.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == STORE_VERSION

        loaded = NotebookStore.load(path)
        snapshot = loaded.fetch_notebook(notebook.id)
        assert [n.id for n in snapshot.notes] == [a.id, b.id]
        assert snapshot.notes[1].note_type is NoteType.IMAGE
        assert snapshot.connections[0].from_side is Side.BOTTOM

    def test_load_missing_file_starts_empty(self, tmp_path):
        loaded = NotebookStore.load(tmp_path / "absent.json")
        assert loaded.list_notebooks() == []

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            NotebookStore.load(path)

    def test_autosave_writes_on_change(self, tmp_path):
        path = tmp_path / "auto.json"
        store = NotebookStore(path, autosave=True)
        store.create_notebook("Auto")
        assert path.exists()
        assert NotebookStore.load(path).list_notebooks()[0]["name"] == "Auto"

    def test_save_without_path(self, store):
        with pytest.raises(ValueError):
            store.save()


class TestStoreSettings:
    def test_round_trip(self, app, tmp_path):
        qsettings = QSettings(str(tmp_path / "settings.ini"), QSettings.IniFormat)
        settings = StoreSettings(qsettings)
        settings.set_store_path(tmp_path / "notes.json")
        settings.set_last_notebook_id("nb-1")
        assert settings.store_path() == tmp_path / "notes.json"
        assert settings.last_notebook_id() == "nb-1"

    def test_defaults(self, app, tmp_path):
        settings = StoreSettings(QSettings(str(tmp_path / "empty.ini"), QSettings.IniFormat))
        assert settings.last_notebook_id() == ""
        assert settings.store_path().name == "notebooks.json"

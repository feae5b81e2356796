"""Tests for scene projection."""

from notecanvas.constants import (
    ANCHOR_TARGET_COLOR,
    CONNECTION_COLOR,
    CONNECTION_HOVER_COLOR,
    NOTE_BORDER_COLORS,
)
from notecanvas.render import hovered_connection_at, project_scene
from notecanvas.types import (
    IDLE,
    Connecting,
    Connection,
    Dragging,
    Note,
    NoteType,
    Point,
    Side,
)


def _notes():
    return [
        Note(id="a", note_type=NoteType.TEXT, content="A", x=0.0, y=0.0, width=200.0, height=100.0),
        Note(id="b", note_type=NoteType.TEXT, content="B", x=400.0, y=0.0, width=200.0, height=100.0),
    ]


def _connections():
    return [
        Connection("c1", "a", "b", Side.RIGHT, Side.LEFT),
        Connection("c2", "a", "gone", Side.BOTTOM, Side.TOP),
    ]


class TestProjectScene:
    def test_idle_scene(self):
        scene = project_scene(_notes(), _connections(), IDLE)
        assert [p.note_id for p in scene.notes] == ["a", "b"]
        assert all(p.state == "normal" for p in scene.notes)
        assert len(scene.anchors) == 8
        assert [c.connection_id for c in scene.connections] == ["c1"]
        assert scene.connections[0].color == CONNECTION_COLOR
        assert scene.delete_marker is None
        assert scene.drag_line is None

    def test_dragging_note_border(self):
        scene = project_scene(_notes(), [], Dragging("b", Point(0.0, 0.0)))
        states = {p.note_id: (p.state, p.border_color) for p in scene.notes}
        assert states["b"] == ("dragging", NOTE_BORDER_COLORS["dragging"])
        assert states["a"] == ("normal", NOTE_BORDER_COLORS["normal"])

    def test_editing_note_border(self):
        scene = project_scene(_notes(), [], IDLE, editing_note_id="a")
        assert scene.notes[0].state == "editing"

    def test_hovered_connection_has_delete_marker(self):
        scene = project_scene(_notes(), _connections(), IDLE, hovered_connection_id="c1")
        connection = scene.connections[0]
        assert connection.hovered
        assert connection.color == CONNECTION_HOVER_COLOR
        assert (scene.delete_marker.x, scene.delete_marker.y) == (300.0, 50.0)

    def test_connecting_drag_line_and_target_highlight(self):
        state = Connecting("a", Side.RIGHT, Point(402.0, 50.0))
        scene = project_scene(_notes(), [], state)
        line = scene.drag_line
        assert (line.x1, line.y1, line.x2, line.y2) == (200.0, 50.0, 402.0, 50.0)
        highlighted = [a for a in scene.anchors if a.highlighted]
        assert [(a.note_id, a.side) for a in highlighted] == [("b", "left")]
        assert highlighted[0].color == ANCHOR_TARGET_COLOR

    def test_to_dict_keys(self):
        data = project_scene(_notes(), _connections(), IDLE).to_dict()
        assert set(data) == {"notes", "anchors", "connections", "deleteMarker", "dragLine"}
        assert data["connections"][0]["connection_id"] == "c1"


class TestHover:
    def test_hover_hit_when_idle(self):
        assert hovered_connection_at(_notes(), _connections(), IDLE, Point(300.0, 52.0)) == "c1"

    def test_no_hover_during_gesture(self):
        state = Dragging("a", Point(0.0, 0.0))
        assert hovered_connection_at(_notes(), _connections(), state, Point(300.0, 50.0)) is None

"""Tests for anchor geometry, insertion layout and canvas bounds."""

import pytest

from notecanvas.bounds import compute_bounds
from notecanvas.geometry import (
    anchor_point,
    contains_point,
    distance_to_segment,
    find_anchor_at,
    within_anchor_hit_radius,
)
from notecanvas.layout import TargetBand, default_target_band, place_new_note
from notecanvas.types import CanvasBounds, Note, NoteType, Point, Rect, Side


def _note(note_id="a", x=100.0, y=100.0, width=200.0, height=100.0):
    return Note(id=note_id, note_type=NoteType.TEXT, content="hi", x=x, y=y, width=width, height=height)


class TestAnchors:
    @pytest.mark.parametrize(
        "side, expected",
        [
            (Side.TOP, Point(200.0, 100.0)),
            (Side.RIGHT, Point(300.0, 150.0)),
            (Side.BOTTOM, Point(200.0, 200.0)),
            (Side.LEFT, Point(100.0, 150.0)),
        ],
    )
    def test_anchor_at_edge_midpoints(self, side, expected):
        assert anchor_point(_note(), side) == expected

    def test_anchor_point_is_pure(self):
        note = _note()
        assert anchor_point(note, Side.RIGHT) == anchor_point(note, Side.RIGHT)
        assert (note.x, note.y, note.width, note.height) == (100.0, 100.0, 200.0, 100.0)

    def test_hit_radius_is_inclusive(self):
        anchor = Point(0.0, 0.0)
        assert within_anchor_hit_radius(Point(10.0, 0.0), anchor, 10.0)
        assert within_anchor_hit_radius(Point(6.0, 8.0), anchor, 10.0)
        assert not within_anchor_hit_radius(Point(10.1, 0.0), anchor, 10.0)

    def test_find_anchor_skips_excluded_note(self):
        first = _note("a")
        second = _note("b", x=400.0)
        hit = find_anchor_at([first, second], Point(400.0, 150.0), 10.0, exclude_note_id="a")
        assert hit == ("b", Side.LEFT)
        assert find_anchor_at([first], Point(100.0, 150.0), 10.0, exclude_note_id="a") is None

    def test_find_anchor_prefers_first_note_in_order(self):
        first = _note("a", x=0.0)
        second = _note("b", x=200.0)
        # first's right anchor and second's left anchor coincide at (200, 150)
        assert find_anchor_at([first, second], Point(200.0, 150.0)) == ("a", Side.RIGHT)
        assert find_anchor_at([second, first], Point(200.0, 150.0)) == ("b", Side.LEFT)

    def test_find_anchor_miss(self):
        assert find_anchor_at([_note()], Point(0.0, 0.0)) is None


class TestShapes:
    def test_contains_point_includes_edges(self):
        rect = Rect(0.0, 0.0, 10.0, 10.0)
        assert contains_point(rect, Point(10.0, 10.0))
        assert not contains_point(rect, Point(10.5, 5.0))

    def test_distance_to_segment(self):
        a, b = Point(0.0, 0.0), Point(10.0, 0.0)
        assert distance_to_segment(Point(5.0, 3.0), a, b) == pytest.approx(3.0)
        assert distance_to_segment(Point(-4.0, 3.0), a, b) == pytest.approx(5.0)
        assert distance_to_segment(Point(1.0, 1.0), a, a) == pytest.approx(2 ** 0.5)


class TestLayoutPlanner:
    def test_empty_canvas_uses_band_origin(self):
        band = default_target_band(800.0)
        assert place_new_note([], band) == (100.0, 500.0)

    def test_band_never_above_minimum(self):
        assert place_new_note([], default_target_band(350.0)) == (100.0, 100.0)

    def test_packs_right_of_row(self):
        existing = [_note("a", x=100.0, y=300.0, width=200.0, height=150.0)]
        assert place_new_note(existing, TargetBand(100.0, 300.0)) == (350.0, 300.0)

    def test_uses_rightmost_note_in_row(self):
        existing = [
            _note("a", x=100.0, y=300.0, width=200.0),
            _note("b", x=600.0, y=320.0, width=300.0),
            _note("c", x=2000.0, y=900.0, width=300.0),
        ]
        assert place_new_note(existing, TargetBand(100.0, 300.0)) == (950.0, 300.0)

    def test_row_tolerance_is_exclusive(self):
        existing = [_note("a", x=100.0, y=350.0, width=200.0)]
        assert place_new_note(existing, TargetBand(100.0, 300.0)) == (100.0, 300.0)


class TestCanvasBounds:
    def test_minimum_for_empty_canvas(self):
        assert compute_bounds([]) == CanvasBounds(1400.0, 600.0)

    def test_grows_with_notes(self):
        note = _note(x=1000.0, y=400.0, width=200.0, height=100.0)
        assert compute_bounds([note]) == CanvasBounds(1500.0, 800.0)

    def test_small_notes_keep_minimum(self):
        assert compute_bounds([_note(x=10.0, y=10.0)]) == CanvasBounds(1400.0, 600.0)

"""Constants and presets for NoteCanvas."""

from typing import Any, Dict

from .types import NoteType


APP_NAME = "NoteCanvas"
ORGANIZATION_NAME = "NoteCanvas"

# Note geometry
MIN_NOTE_WIDTH = 200.0
MIN_NOTE_HEIGHT = 150.0
DEFAULT_NOTE_WIDTH = 300.0
DEFAULT_NOTE_HEIGHT = 200.0

# Layout planner
DEFAULT_INSERT_X = 100.0
MIN_INSERT_Y = 100.0
INSERT_BOTTOM_MARGIN = 300.0
SAME_ROW_TOLERANCE = 50.0
ROW_GAP = 50.0

# Canvas bounds
MIN_CANVAS_WIDTH = 1400.0
MIN_CANVAS_HEIGHT = 600.0
CANVAS_MARGIN = 300.0

# Hit testing
ANCHOR_HIT_RADIUS = 10.0
CONNECTION_HIT_BAND = 12.0

# Keys understood by onKeyDown, matching Qt.Key names without the prefix.
DELETE_KEYS = frozenset({"Delete", "Backspace"})
SAVE_KEYS = frozenset({"Enter", "Return"})
CANCEL_KEY = "Escape"
SAVE_MODIFIERS = frozenset({"ctrl", "meta"})

NOTE_PRESETS: Dict[str, Dict[str, Any]] = {
    "text": {
        "type": NoteType.TEXT,
        "width": DEFAULT_NOTE_WIDTH,
        "height": DEFAULT_NOTE_HEIGHT,
    },
    "image": {
        "type": NoteType.IMAGE,
        "width": DEFAULT_NOTE_WIDTH,
        "height": DEFAULT_NOTE_HEIGHT,
    },
}

# Render colours
NOTE_BORDER_COLORS: Dict[str, str] = {
    "normal": "#e5e7eb",
    "dragging": "#ef4444",
    "resizing": "#c084fc",
    "editing": "#3b82f6",
}
ANCHOR_COLOR = "#22c55e"
ANCHOR_TARGET_COLOR = "#3b82f6"
CONNECTION_COLOR = "#3b82f6"
CONNECTION_HOVER_COLOR = "#ef4444"
CONNECTION_WIDTH = 2.0
CONNECTION_HOVER_WIDTH = 3.0
DRAG_LINE_COLOR = "#22c55e"
DELETE_MARKER_RADIUS = 8.0

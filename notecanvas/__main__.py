"""Print a notebook's render scene as JSON.

Usage:
  notecanvas-dump --list                 # list notebooks in the store
  notecanvas-dump NOTEBOOK_ID            # dump the idle scene of a notebook
  notecanvas-dump NOTEBOOK_ID --store path/to/store.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from notebook_store import NotebookStore, StoreSettings

from .bounds import compute_bounds
from .errors import NotFoundError
from .logging_setup import install_qt_message_handler, setup_logging
from .render import project_scene
from .types import IDLE


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Dump a notebook's canvas scene as JSON.")
    parser.add_argument("notebook_id", nargs="?", help="Notebook to render.")
    parser.add_argument("--store", help="Path to the notebook store (default: last used store).")
    parser.add_argument("--list", action="store_true", help="List notebooks instead of rendering one.")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (default: 2).")
    parser.add_argument("--verbose", action="store_true", help="Log to the console and the log file.")
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging()
        install_qt_message_handler()

    path = Path(args.store) if args.store else StoreSettings().store_path()
    if not path.exists():
        print(f"Store not found: {path}", file=sys.stderr)
        return 1
    try:
        store = NotebookStore.load(path)
    except ValueError as e:
        print(f"Could not read store: {e}", file=sys.stderr)
        return 1

    if args.list:
        print(json.dumps(store.list_notebooks(), indent=args.indent))
        return 0

    if not args.notebook_id:
        parser.error("notebook_id is required unless --list is given")

    try:
        snapshot = store.fetch_notebook(args.notebook_id)
    except NotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    bounds = compute_bounds(snapshot.notes)
    payload = {
        "notebook": {"id": snapshot.notebook.id, "name": snapshot.notebook.name},
        "canvas": {"width": bounds.width, "height": bounds.height},
        "scene": project_scene(snapshot.notes, snapshot.connections, IDLE).to_dict(),
    }
    print(json.dumps(payload, indent=args.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

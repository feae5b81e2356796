"""Fire-and-forget write-behind of local edits to the notebook store."""

from __future__ import annotations

import logging
from itertools import count
from typing import Any, Callable, Dict, Optional, Set

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from .errors import CanvasError, CommitError

logger = logging.getLogger(__name__)


class CommitSignals(QObject):
    finished = Signal(int, object)   # req_id, result
    failed = Signal(int, object)     # req_id, exception


class CommitWorker(QRunnable):
    """Run one store call off the GUI thread and report the outcome."""

    def __init__(self, *, req_id: int, label: str, call: Callable[[], Any]):
        super().__init__()
        self.req_id = req_id
        self.label = label
        self.call = call
        self.signals = CommitSignals()

    def run(self) -> None:
        try:
            result = self.call()
        except CanvasError as exc:
            self.signals.failed.emit(self.req_id, exc)
            return
        except Exception as exc:
            logger.exception("Commit #%d (%s) raised", self.req_id, self.label)
            error = CommitError(str(exc))
            error.__cause__ = exc
            self.signals.failed.emit(self.req_id, error)
            return
        self.signals.finished.emit(self.req_id, result)


class CommitDispatcher(QObject):
    """Submit store calls without blocking interaction.

    Each submission gets a request id. Outcomes are re-emitted as
    ``committed`` or ``commitFailed`` on the thread that owns the dispatcher.
    While a request touching a note is outstanding the note is reported by
    ``has_pending`` so refreshes can keep the newer local values.

    With ``synchronous=True`` workers run inline, which keeps behaviour
    deterministic for tests and headless tools.
    """

    committed = Signal(int, str, object)      # req_id, label, result
    commitFailed = Signal(int, str, object)   # req_id, label, exception

    def __init__(self, synchronous: bool = False, pool: Optional[QThreadPool] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._synchronous = synchronous
        self._pool = pool or QThreadPool.globalInstance()
        self._id_source = count(1)
        self._workers: Dict[int, CommitWorker] = {}
        self._pending_notes: Dict[int, str] = {}
        self._pending_deletes: Dict[int, str] = {}
        self._callbacks: Dict[int, Callable[[Any], None]] = {}
        self._failure_callbacks: Dict[int, Callable[[Exception], None]] = {}

    @property
    def synchronous(self) -> bool:
        return self._synchronous

    def submit(
        self,
        label: str,
        call: Callable[[], Any],
        note_id: str = "",
        on_done: Optional[Callable[[Any], None]] = None,
        on_failed: Optional[Callable[[Exception], None]] = None,
        deletes: str = "",
    ) -> int:
        """Queue ``call`` and return its request id.

        ``on_done`` receives the result on success, before ``committed`` is
        emitted; ``on_failed`` receives the exception before ``commitFailed``.
        Both are registered before the worker starts, so they also fire for
        synchronous dispatchers. ``deletes`` names the note or connection the
        call removes; it is reported by ``pending_deleted_ids`` until the
        outcome arrives.
        """
        req_id = next(self._id_source)
        worker = CommitWorker(req_id=req_id, label=label, call=call)
        worker.signals.finished.connect(self._on_finished)
        worker.signals.failed.connect(self._on_failed)
        self._workers[req_id] = worker
        if note_id:
            self._pending_notes[req_id] = note_id
        if deletes:
            self._pending_deletes[req_id] = deletes
        if on_done is not None:
            self._callbacks[req_id] = on_done
        if on_failed is not None:
            self._failure_callbacks[req_id] = on_failed
        logger.debug("Commit #%d queued: %s %s", req_id, label, note_id)
        if self._synchronous:
            worker.run()
        else:
            self._pool.start(worker)
        return req_id

    def has_pending(self, note_id: str) -> bool:
        return note_id in self._pending_notes.values()

    def pending_note_ids(self) -> Set[str]:
        return set(self._pending_notes.values())

    def pending_deleted_ids(self) -> Set[str]:
        return set(self._pending_deletes.values())

    def pending_count(self) -> int:
        return len(self._workers)

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until the pool is idle; queued outcomes still need an event loop."""
        if self._synchronous:
            return True
        return self._pool.waitForDone(msecs)

    def _release(self, req_id: int) -> str:
        worker = self._workers.pop(req_id, None)
        self._pending_notes.pop(req_id, None)
        self._pending_deletes.pop(req_id, None)
        return worker.label if worker is not None else ""

    def _on_finished(self, req_id: int, result: Any) -> None:
        callback = self._callbacks.pop(req_id, None)
        self._failure_callbacks.pop(req_id, None)
        label = self._release(req_id)
        logger.debug("Commit #%d done: %s", req_id, label)
        if callback is not None:
            callback(result)
        self.committed.emit(req_id, label, result)

    def _on_failed(self, req_id: int, exc: Exception) -> None:
        self._callbacks.pop(req_id, None)
        callback = self._failure_callbacks.pop(req_id, None)
        label = self._release(req_id)
        logger.error("Commit #%d failed: %s: %s", req_id, label, exc)
        if callback is not None:
            callback(exc)
        self.commitFailed.emit(req_id, label, exc)

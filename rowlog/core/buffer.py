"""In-memory line buffer with size/interval flushing and a crash-safe drain."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ConfigurationError
from .events import EventEmitter
from .writer import AsyncAppender, append_sync

LOGGER = logging.getLogger(__name__)

DEFAULT_BUFFER_MAX_LINES = 1000
DEFAULT_FLUSH_INTERVAL = 1.0

FLUSH_EVENT = "buffer_flushed"

BufferedLine = Tuple[str, str]


def append_grouped(entries: Sequence[BufferedLine]) -> None:
    """Append buffered ``(path, line)`` entries with one write per path.

    Lines keep their relative order within each path.
    """

    grouped: Dict[str, List[str]] = {}
    for path, line in entries:
        grouped.setdefault(path, []).append(line)
    for path, lines in grouped.items():
        append_sync(path, "".join(lines))


class BufferManager:
    """Accumulate composed lines and append them in single-flight batches.

    The manager is either *disabled* (every :meth:`add` is refused so the
    caller writes directly) or *active*. :meth:`shutdown` returns it to
    disabled; only :meth:`enable` activates it again.

    The lock is re-entrant so that :meth:`shutdown` can run from a signal
    handler interrupting :meth:`add` or :meth:`flush` on the same thread.
    """

    def __init__(
        self,
        appender: AsyncAppender,
        events: EventEmitter,
        *,
        sync_provider: Callable[[], bool],
        max_lines: int = DEFAULT_BUFFER_MAX_LINES,
        interval: float = DEFAULT_FLUSH_INTERVAL,
    ) -> None:
        self._appender = appender
        self._events = events
        self._sync_provider = sync_provider
        self.max_lines = max_lines
        self.interval = interval

        self._entries: List[BufferedLine] = []
        self._lock = threading.RLock()
        self._enabled = False
        self._flushing = False
        self._stop: Optional[threading.Event] = None
        self._timer: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def flushing(self) -> bool:
        return self._flushing

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def enable(self, max_lines: Optional[int] = None, interval: Optional[float] = None) -> None:
        """Activate buffering and start the recurring flush timer."""

        if max_lines is not None:
            self.max_lines = max_lines
        if interval is not None:
            self.interval = interval
        if self.max_lines < 1:
            raise ConfigurationError(f"buffer_max_lines must be positive, got {self.max_lines}")
        if self.interval <= 0:
            raise ConfigurationError(f"flush_interval must be positive, got {self.interval}")

        with self._lock:
            if self._enabled:
                return
            self._enabled = True
            stop = threading.Event()
            self._stop = stop
            self._timer = threading.Thread(
                target=self._run_timer, args=(stop,), name="rowlog-flush-timer", daemon=True
            )
            self._timer.start()
        LOGGER.debug("Buffering enabled (max_lines=%s, interval=%ss)", self.max_lines, self.interval)

    def add(self, path: str, line: str) -> bool:
        """Buffer ``line`` for ``path``; return ``False`` when buffering is disabled."""

        with self._lock:
            if not self._enabled:
                return False
            self._entries.append((path, line))
            full = len(self._entries) >= self.max_lines
        if full:
            self.flush()
        return True

    def flush(self) -> bool:
        """Append everything buffered so far; return ``True`` if a flush started.

        Does nothing while another flush is still in flight.
        """

        with self._lock:
            if not self._entries or self._flushing:
                return False
            entries, self._entries = self._entries, []
            self._flushing = True

        payload = "".join(line for _, line in entries)
        if self._sync_provider():
            try:
                append_grouped(entries)
            finally:
                self._flushing = False
            self._events.emit(FLUSH_EVENT, payload)
        else:
            try:
                future = self._appender.submit(append_grouped, entries)
            except RuntimeError:
                self._flushing = False
                raise
            future.add_done_callback(
                lambda done: self._finish_async_flush(done, payload, len(entries))
            )
        return True

    def shutdown(self) -> None:
        """Stop the timer and synchronously drain whatever is still buffered.

        Idempotent once disabled. Drain failures propagate.
        """

        with self._lock:
            if not self._enabled:
                return
            self._enabled = False
            stop, self._stop = self._stop, None
            timer, self._timer = self._timer, None
            entries, self._entries = self._entries, []

        if stop is not None:
            stop.set()
        if timer is not None and timer is not threading.current_thread():
            timer.join()
        if entries:
            append_grouped(entries)
            LOGGER.debug("Drained %d buffered line(s) on shutdown", len(entries))

    # ------------------------------------------------------------------
    def _finish_async_flush(self, future: "Future[Any]", payload: str, count: int) -> None:
        self._flushing = False
        exc = future.exception()
        if exc is not None:
            LOGGER.warning("Buffered flush of %d line(s) failed: %s", count, exc)
            return
        try:
            self._events.emit(FLUSH_EVENT, payload)
        except Exception:
            LOGGER.exception("%s listener raised", FLUSH_EVENT)

    def _run_timer(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.flush()
            except Exception:
                LOGGER.exception("Timed buffer flush failed")


__all__ = [
    "BufferManager",
    "DEFAULT_BUFFER_MAX_LINES",
    "DEFAULT_FLUSH_INTERVAL",
    "FLUSH_EVENT",
    "append_grouped",
]

"""Opt-in process shutdown hooks for draining a buffered logger."""

from __future__ import annotations

import atexit
import logging
import os
import signal
from typing import Any, Callable, Dict, Iterable, Optional

LOGGER = logging.getLogger(__name__)


class ShutdownHooks:
    """Run ``shutdown`` once at interpreter exit and/or on the given signals.

    Previously installed signal handlers are chained: they run after
    ``shutdown``. A default disposition is re-delivered so the process still
    terminates. Signal handlers can only be installed from the main thread.
    """

    def __init__(self, shutdown: Callable[[], None], signals: Iterable[int] = ()) -> None:
        self._shutdown = shutdown
        self._signals = tuple(signals)
        self._previous: Dict[int, Any] = {}
        self._installed = False
        self.done = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> "ShutdownHooks":
        if self._installed:
            return self
        atexit.register(self.run)
        for signum in self._signals:
            self._previous[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle_signal)
        self._installed = True
        return self

    def uninstall(self) -> None:
        if not self._installed:
            return
        atexit.unregister(self.run)
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()
        self._installed = False

    def run(self) -> None:
        if self.done:
            return
        self.done = True
        try:
            self._shutdown()
        except Exception:
            LOGGER.exception("Logger shutdown hook failed")

    def _handle_signal(self, signum: int, frame: Optional[Any]) -> None:
        self.run()
        previous = self._previous.get(signum, signal.SIG_DFL)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            signal.signal(signum, signal.SIG_DFL)
            os.kill(os.getpid(), signum)


__all__ = ["ShutdownHooks"]

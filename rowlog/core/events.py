"""Minimal observer channel used for ``row`` and ``buffer_flushed`` events."""

from __future__ import annotations

from threading import RLock
from typing import Any, Callable, Dict, List, Tuple

Listener = Callable[..., Any]


class EventEmitter:
    """Register listeners by event name and notify them in registration order."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Tuple[Listener, bool]]] = {}
        self._lock = RLock()

    def on(self, event: str, listener: Listener) -> Listener:
        with self._lock:
            self._listeners.setdefault(event, []).append((listener, False))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` to be called for the next ``event`` only."""

        with self._lock:
            self._listeners.setdefault(event, []).append((listener, True))
        return listener

    def off(self, event: str, listener: Listener) -> None:
        with self._lock:
            entries = self._listeners.get(event, [])
            self._listeners[event] = [entry for entry in entries if entry[0] is not listener]

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of ``event``; return ``True`` if any was registered.

        Listener exceptions propagate to the caller of :meth:`emit`.
        """

        with self._lock:
            entries = list(self._listeners.get(event, []))
            if not entries:
                return False
            self._listeners[event] = [entry for entry in entries if not entry[1]]
        for listener, _ in entries:
            listener(*args)
        return True


__all__ = ["EventEmitter", "Listener"]

"""Write path: synchronous append, fire-and-forget append and echo."""

from __future__ import annotations

import logging
import os
import sys
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Optional, Sequence, TextIO, Union

from ..utils.types import ComposedRow, EchoHandler

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

RESET = "\033[0m"
DIVIDER_COLOR = "\033[90m"
COLUMN_PALETTE = (
    "\033[36m",  # cyan
    "\033[32m",  # green
    "\033[33m",  # yellow
    "\033[35m",  # magenta
    "\033[34m",  # blue
    "\033[31m",  # red
    "\033[37m",  # white
)


def append_sync(path: PathLike, payload: str) -> None:
    """Append ``payload`` to ``path``; errors propagate to the caller."""

    with open(path, "a", encoding="utf-8", newline="") as handle:
        handle.write(payload)


class AsyncAppender:
    """Single-worker background executor for appends and file operations.

    One worker keeps submitted jobs in submission order. Failures of
    :meth:`append` are logged and otherwise dropped.
    """

    def __init__(self, name: str = "rowlog-append") -> None:
        self._name = name
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = Lock()

    def _ensure_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=self._name)
            return self._executor

    def submit(self, fn: Callable[..., Any], *args: Any) -> "Future[Any]":
        return self._ensure_executor().submit(fn, *args)

    def append(self, path: PathLike, payload: str) -> "Future[Any]":
        future = self.submit(append_sync, path, payload)
        future.add_done_callback(lambda done: _log_failure(done, path))
        return future

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until everything submitted so far has run."""

        with self._lock:
            executor = self._executor
        if executor is None:
            return
        executor.submit(lambda: None).result(timeout=timeout)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)


def _log_failure(future: "Future[Any]", path: PathLike) -> None:
    exc = future.exception()
    if exc is not None:
        LOGGER.warning("Asynchronous append to %s failed: %s", path, exc)


def write(appender: AsyncAppender, path: PathLike, payload: str, *, sync: bool) -> None:
    if sync:
        append_sync(path, payload)
    else:
        appender.append(path, payload)


def colorize(columns: Sequence[str]) -> str:
    """Render ``columns`` in the bracket layout with a repeating color palette."""

    parts = []
    for index, value in enumerate(columns):
        color = COLUMN_PALETTE[index % len(COLUMN_PALETTE)]
        parts.append(
            f"{DIVIDER_COLOR}[{RESET}{color}{value}{RESET}{DIVIDER_COLOR}]{RESET}"
        )
    return "".join(parts) + os.linesep


def echo_row(
    row: ComposedRow,
    appender: AsyncAppender,
    *,
    handler: Optional[EchoHandler] = None,
    echo_path: Optional[PathLike] = None,
    color: bool = False,
    sync: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """Send ``row`` to its secondary destination."""

    if handler is not None:
        handler(row.line, row.columns, row.record)
    elif echo_path:
        write(appender, echo_path, row.line, sync=sync)
    else:
        stream = stream or sys.stdout
        stream.write(colorize(row.columns) if color else row.line)
        stream.flush()


__all__ = [
    "AsyncAppender",
    "COLUMN_PALETTE",
    "DIVIDER_COLOR",
    "append_sync",
    "colorize",
    "echo_row",
    "write",
]

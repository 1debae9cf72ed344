"""Structured append-only row logger."""
from __future__ import annotations

import logging
import os
import socket
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Union

from ..errors import ConfigurationError
from ..storage.archiver import archive_files
from ..storage.rotator import rotate_file
from ..utils.types import (
    ArchiveReport,
    ColumnFilter,
    CompletionCallback,
    ComposedRow,
    EchoHandler,
    PathResolver,
    Record,
    Serializer,
)
from .buffer import DEFAULT_BUFFER_MAX_LINES, DEFAULT_FLUSH_INTERVAL, FLUSH_EVENT, BufferManager
from .events import EventEmitter, Listener
from .formatter import RowFormatter
from .lifecycle import ShutdownHooks
from .writer import AsyncAppender, echo_row, write

LOGGER = logging.getLogger(__name__)

ROW_EVENT = "row"

DEFAULT_ARGS: Dict[str, Any] = {
    "sync": False,
    "echo": False,
    "color": False,
    "echo_path": None,
    "debug_level": 1,
    "use_buffer": False,
    "buffer_max_lines": DEFAULT_BUFFER_MAX_LINES,
    "flush_interval": DEFAULT_FLUSH_INTERVAL,
    "approximate_time": False,
    "flush_on_shutdown": False,
}


class Logger:
    """Format named values into ``[a][b][c]`` rows and append them to a file.

    ``args`` holds the persistent defaults merged under every row, including
    the control flags listed in :data:`DEFAULT_ARGS`. ``path`` may contain
    ``[key]`` placeholders resolved from the merged record of each row.

    Unbuffered asynchronous appends are fire-and-forget: their failures are
    logged through :mod:`logging` and never raised to the caller of
    :meth:`print`. Use ``sync=True`` to have write errors raised.
    """

    def __init__(
        self,
        path: Union[str, Path],
        columns: Sequence[str],
        args: Optional[Mapping[str, Any]] = None,
        *,
        path_resolver: Optional[PathResolver] = None,
        column_filter: Optional[ColumnFilter] = None,
        serializer: Optional[Serializer] = None,
        echo_handler: Optional[EchoHandler] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.path = os.fspath(path)
        self.columns = list(columns)
        self.args: Dict[str, Any] = dict(DEFAULT_ARGS)
        self.args.update(args or {})
        if not self.args.get("hostname"):
            self.args["hostname"] = socket.gethostname()
        self.args["pid"] = os.getpid()

        self.formatter = RowFormatter(
            self.columns,
            path_resolver=path_resolver,
            column_filter=column_filter,
            serializer=serializer,
            clock=clock,
        )
        self.echo_handler = echo_handler
        self.events = EventEmitter()
        self.last_row: Optional[str] = None
        self.last_path: Optional[str] = None

        self._appender = AsyncAppender()
        self._buffer = BufferManager(
            self._appender,
            self.events,
            sync_provider=lambda: self._sync_for(self.args),
            max_lines=self.args["buffer_max_lines"],
            interval=self.args["flush_interval"],
        )
        self._shutdown_hooks: Optional[ShutdownHooks] = None
        self._forced_sync = False

        if self.args.get("use_buffer"):
            self.enable_buffer()
        if self.args.get("flush_on_shutdown"):
            self.install_shutdown_hooks()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def get(self, key: Optional[str] = None) -> Any:
        """Return one persistent default, or a copy of all of them."""

        if key is None:
            return dict(self.args)
        return self.args.get(key)

    def set(self, *args: Any, **kwargs: Any) -> None:
        """Update persistent defaults: ``set(key, value)``, ``set(mapping)`` or ``set(**values)``."""

        if len(args) == 2 and not kwargs:
            self.args[args[0]] = args[1]
        elif len(args) == 1 and isinstance(args[0], Mapping) and not kwargs:
            self.args.update(args[0])
        elif not args and kwargs:
            self.args.update(kwargs)
        else:
            raise ConfigurationError("set() expects (key, value), (mapping) or keyword values")

    def clone(self, **overrides: Any) -> "Logger":
        """Return a new logger sharing defaults and hooks but not timers or buffers."""

        args = dict(self.args)
        args.pop("pid", None)
        args.update(overrides)
        return Logger(
            self.path,
            self.columns,
            args,
            path_resolver=self.formatter.path_resolver,
            column_filter=self.formatter.column_filter,
            serializer=self.formatter.serializer,
            echo_handler=self.echo_handler,
            clock=self.formatter.clock,
        )

    def resolve_path(self, record: Optional[Mapping[str, Any]] = None) -> str:
        """Resolve the configured path from the defaults (plus ``record``)."""

        values = dict(self.args)
        if record:
            values.update(record)
        return self.formatter.path_resolver(self.path, values)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)

    def once(self, event: str, listener: Listener) -> Listener:
        return self.events.once(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def print(self, record: Optional[Mapping[str, Any]] = None, **fields: Any) -> Optional[str]:
        """Compose one row from the defaults plus ``record``/``fields`` and write it.

        Returns the composed line, or ``None`` when the serializer suppressed it.
        """

        merged: Record = dict(self.args)
        if record:
            merged.update(record)
        merged.update(fields)

        row = self.formatter.compose(self.path, merged)
        if row is None:
            return None

        self.last_row = row.line
        self.last_path = row.path
        self._write(row)
        if merged.get("echo"):
            echo_row(
                row,
                self._appender,
                handler=self.echo_handler,
                echo_path=merged.get("echo_path"),
                color=bool(merged.get("color")),
                sync=self._sync_for(merged),
            )
        self.events.emit(ROW_EVENT, row.line, row.columns, row.record)
        return row.line

    def _write(self, row: ComposedRow) -> None:
        if self._buffer.add(row.path, row.line):
            return
        write(self._appender, row.path, row.line, sync=self._sync_for(row.record))

    def _sync_for(self, record: Mapping[str, Any]) -> bool:
        return self._forced_sync or bool(record.get("sync"))

    def should_log(self, level: int) -> bool:
        return self.args.get("debug_level", 0) >= level

    def debug(self, level: int, msg: Any, data: Any = None) -> Optional[str]:
        """Log a ``debug`` row when ``level`` is within the configured threshold."""

        if not self.should_log(level):
            return None
        return self.print({"category": "debug", "code": level, "msg": msg, "data": data})

    def error(self, code: Any, msg: Any, data: Any = None) -> Optional[str]:
        return self.print({"category": "error", "code": code, "msg": msg, "data": data})

    def transaction(self, code: Any, msg: Any, data: Any = None) -> Optional[str]:
        return self.print({"category": "transaction", "code": code, "msg": msg, "data": data})

    # ------------------------------------------------------------------
    # Buffering and lifecycle
    # ------------------------------------------------------------------
    @property
    def use_buffer(self) -> bool:
        return self._buffer.enabled

    def enable_buffer(self, max_lines: Optional[int] = None, interval: Optional[float] = None) -> None:
        if max_lines is not None:
            self.args["buffer_max_lines"] = max_lines
        if interval is not None:
            self.args["flush_interval"] = interval
        self._buffer.enable(self.args["buffer_max_lines"], self.args["flush_interval"])
        self.args["use_buffer"] = True

    def flush(self) -> bool:
        """Trigger a buffer flush now; ``False`` if empty or one is already running."""

        return self._buffer.flush()

    def shutdown(self) -> None:
        """Drain the buffer to disk synchronously and switch to synchronous writes."""

        if not self._buffer.enabled:
            return
        try:
            self._buffer.shutdown()
        finally:
            self._forced_sync = True
            self.args["use_buffer"] = False
            self.args["sync"] = True
        LOGGER.debug("Logger for %s shut down; writes are now synchronous", self.path)

    def install_shutdown_hooks(self, signals: Iterable[int] = ()) -> ShutdownHooks:
        """Run :meth:`shutdown` at interpreter exit and on ``signals``, once."""

        if self._shutdown_hooks is None:
            self._shutdown_hooks = ShutdownHooks(self.shutdown, signals).install()
        return self._shutdown_hooks

    def uninstall_shutdown_hooks(self) -> None:
        if self._shutdown_hooks is not None:
            self._shutdown_hooks.uninstall()
            self._shutdown_hooks = None

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every asynchronous write submitted so far has completed."""

        self._appender.wait(timeout)

    def close(self) -> None:
        self.shutdown()
        self.uninstall_shutdown_hooks()
        self._appender.close(wait=True)

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # File lifecycle
    # ------------------------------------------------------------------
    def rotate(
        self, *paths: Union[str, Path], callback: Optional[CompletionCallback] = None
    ) -> Union[Path, "Future[Any]"]:
        """Move the log file: ``rotate(destination)`` or ``rotate(source, destination)``.

        With ``callback`` the move runs in the background and
        ``callback(error, final_path)`` is called exactly once.
        """

        if len(paths) == 1:
            source, destination = self.resolve_path(), paths[0]
        elif len(paths) == 2:
            source, destination = paths
        else:
            raise ConfigurationError(
                f"rotate() expects (destination) or (source, destination), got {len(paths)} path(s)"
            )
        return self._run_file_op(rotate_file, (source, destination), {}, callback)

    def archive(
        self,
        destination: str,
        *,
        pattern: Optional[Union[str, Path]] = None,
        epoch: Optional[float] = None,
        callback: Optional[CompletionCallback] = None,
    ) -> Union[ArchiveReport, "Future[Any]"]:
        """Archive files matching ``pattern`` (default: this log) to ``destination``."""

        if pattern is None:
            pattern = self.resolve_path()
        kwargs = {"epoch": epoch, "defaults": dict(self.args)}
        return self._run_file_op(archive_files, (pattern, destination), kwargs, callback)

    def _run_file_op(
        self,
        operation: Callable[..., Any],
        args: tuple,
        kwargs: Dict[str, Any],
        callback: Optional[CompletionCallback],
    ) -> Any:
        if callback is None:
            return operation(*args, **kwargs)

        future = self._appender.submit(lambda: operation(*args, **kwargs))

        def _complete(done: "Future[Any]") -> None:
            exc = done.exception()
            callback(exc, None if exc is not None else done.result())

        future.add_done_callback(_complete)
        return future


__all__ = ["DEFAULT_ARGS", "FLUSH_EVENT", "Logger", "ROW_EVENT"]

"""Structured append-only row logger with buffering, rotation and archiving."""

from .core.events import EventEmitter
from .core.lifecycle import ShutdownHooks
from .core.logger import DEFAULT_ARGS, FLUSH_EVENT, ROW_EVENT, Logger
from .errors import ArchiveError, ConfigurationError, RotateError, RowlogError
from .storage.archiver import archive_files
from .storage.rotator import rotate_file
from .utils.types import ArchivedFile, ArchiveReport

__all__ = [
    "ArchiveError",
    "ArchiveReport",
    "ArchivedFile",
    "ConfigurationError",
    "DEFAULT_ARGS",
    "EventEmitter",
    "FLUSH_EVENT",
    "Logger",
    "ROW_EVENT",
    "RotateError",
    "RowlogError",
    "ShutdownHooks",
    "archive_files",
    "rotate_file",
]

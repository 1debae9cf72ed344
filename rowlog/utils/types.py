"""Shared types consumed across the row logger."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

Record = Dict[str, Any]

# Strategy hooks installed on a Logger; ``None`` selects the built-in behaviour.
PathResolver = Callable[[str, Record], str]
ColumnFilter = Callable[[Any, int], str]
Serializer = Callable[[List[str], Record], Optional[str]]
EchoHandler = Callable[[str, List[str], Record], None]

# ``callback(error, result)`` used by rotate/archive when run in the background.
CompletionCallback = Callable[[Optional[BaseException], Any], None]


@dataclass
class ComposedRow:
    """A fully formatted row, ready for the write path."""

    line: str
    columns: List[str]
    record: Record
    path: str


@dataclass
class ArchivedFile:
    """Outcome of archiving a single matched file."""

    source: Path
    destination: Path
    compressed: bool


@dataclass
class ArchiveReport:
    """Summary returned after every matched file has been archived."""

    pattern: str
    files: Sequence[ArchivedFile]

    @property
    def destinations(self) -> List[Path]:
        return [item.destination for item in self.files]


__all__ = [
    "ArchiveReport",
    "ArchivedFile",
    "ColumnFilter",
    "CompletionCallback",
    "ComposedRow",
    "EchoHandler",
    "PathResolver",
    "Record",
    "Serializer",
]

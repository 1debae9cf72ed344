"""Relocate matched log files to dated destinations, gzip-compressing on demand."""
from __future__ import annotations

import glob
import gzip
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..errors import ArchiveError
from ..utils.dates import get_date_args
from ..utils.placeholders import substitute
from ..utils.types import ArchivedFile, ArchiveReport

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

COMPRESSED_SUFFIXES = (".gz", ".gzip")
COPY_CHUNK_SIZE = 1024 * 1024


def is_compressed_target(destination: PathLike) -> bool:
    return os.fspath(destination).lower().endswith(COMPRESSED_SUFFIXES)


def match_files(pattern: PathLike) -> List[Path]:
    """Expand ``pattern``; raise :class:`ArchiveError` when nothing matches."""

    pattern = os.fspath(pattern)
    try:
        matches = sorted(glob.glob(pattern))
    except OSError as exc:
        raise ArchiveError(f"Unable to match files: {exc}", step="match", source=pattern) from exc
    files = [Path(match) for match in matches if os.path.isfile(match)]
    if not files:
        raise ArchiveError("No files found", step="match", source=pattern)
    return files


def destination_for(source: Path, template: str, values: Mapping[str, Any]) -> Path:
    args: Dict[str, Any] = dict(values)
    args["filename"] = source.stem
    return Path(substitute(template, args))


def archive_file(source: PathLike, template: str, values: Mapping[str, Any]) -> ArchivedFile:
    """Archive a single file; the destination is always appended to."""

    source = Path(source)
    destination = destination_for(source, template, values)
    staged = source.parent / f".tmp_archive_{source.name}.{uuid.uuid4().hex}"

    def _fail(step: str, exc: BaseException) -> ArchiveError:
        return ArchiveError(
            f"Archiving failed: {exc}",
            step=step,
            source=str(source),
            destination=str(destination),
        )

    try:
        os.rename(source, staged)
    except OSError as exc:
        raise _fail("rename", exc) from exc

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise _fail("mkdir", exc) from exc

    compressed = is_compressed_target(destination)
    try:
        with open(staged, "rb") as reader:
            if compressed:
                with gzip.open(destination, "ab") as writer:
                    shutil.copyfileobj(reader, writer, COPY_CHUNK_SIZE)
            else:
                with open(destination, "ab") as writer:
                    shutil.copyfileobj(reader, writer, COPY_CHUNK_SIZE)
    except OSError as exc:
        raise _fail("compress" if compressed else "copy", exc) from exc

    try:
        os.unlink(staged)
    except OSError as exc:
        raise _fail("unlink", exc) from exc

    LOGGER.info("Archived %s to %s", source, destination)
    return ArchivedFile(source=source, destination=destination, compressed=compressed)


def archive_files(
    pattern: PathLike,
    template: str,
    *,
    epoch: Optional[float] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> ArchiveReport:
    """Archive every file matching ``pattern``, one at a time.

    ``template`` may reference ``[yyyy]``, ``[mm]``, ``[dd]``, ``[hh]``,
    ``[mi]``, ``[ss]`` (and the other keys of
    :func:`rowlog.utils.dates.get_date_args`, computed from ``epoch``),
    ``[filename]`` and any key of ``defaults``. The first failing file stops
    the run.
    """

    files = match_files(pattern)
    values: Dict[str, Any] = dict(defaults or {})
    values.update(get_date_args(epoch))

    archived = [archive_file(path, template, values) for path in files]
    return ArchiveReport(pattern=os.fspath(pattern), files=archived)


__all__ = [
    "COMPRESSED_SUFFIXES",
    "archive_file",
    "archive_files",
    "destination_for",
    "is_compressed_target",
    "match_files",
]

"""Move the active log file aside using atomic rename semantics."""
from __future__ import annotations

import errno
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional, Union

from ..errors import RotateError
from ..utils.dates import compact_stamp

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

COPY_CHUNK_SIZE = 1024 * 1024


def is_directory_target(destination: PathLike) -> bool:
    """Return ``True`` when ``destination`` ends with a separator or is an existing directory."""

    text = os.fspath(destination)
    return text.endswith("/") or text.endswith(os.sep) or os.path.isdir(text)


def rotated_name(source: PathLike, epoch: Optional[float] = None) -> str:
    """Build ``<stem>.<YYYYMMDDHHMISS>.<unique-id><suffix>`` for ``source``."""

    source = Path(source)
    return f"{source.stem}.{compact_stamp(epoch)}.{uuid.uuid4().hex}{source.suffix}"


def resolve_destination(source: PathLike, destination: PathLike) -> Path:
    if is_directory_target(destination):
        return Path(destination) / rotated_name(source)
    return Path(destination)


def _temp_sibling(target: Path) -> Path:
    return target.parent / f".tmp_rotate_{target.name}.{uuid.uuid4().hex}"


def rotate_file(source: PathLike, destination: PathLike) -> Path:
    """Move ``source`` to ``destination`` and return the final path.

    A plain rename is attempted first. Only when it fails with ``EXDEV``
    (different filesystems) is the copy-based fallback used; any other
    failure is raised as :class:`RotateError` straight away.
    """

    source = Path(source)
    target = resolve_destination(source, destination)

    try:
        os.rename(source, target)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise RotateError(
                f"Unable to rename log file: {exc}",
                step="rename",
                source=str(source),
                destination=str(target),
            ) from exc
        LOGGER.debug("Cross-device rotation of %s to %s, copying", source, target)
        _move_across_devices(source, target)

    LOGGER.info("Rotated %s to %s", source, target)
    return target


def _move_across_devices(source: Path, target: Path) -> None:
    source_tmp = _temp_sibling(source)
    target_tmp = _temp_sibling(target)

    def _fail(step: str, exc: BaseException) -> RotateError:
        return RotateError(
            f"Cross-device rotation failed: {exc}",
            step=step,
            source=str(source),
            destination=str(target),
        )

    try:
        os.rename(source, source_tmp)
    except OSError as exc:
        raise _fail("rename", exc) from exc

    try:
        with open(source_tmp, "rb") as reader, open(target_tmp, "xb") as writer:
            shutil.copyfileobj(reader, writer, COPY_CHUNK_SIZE)
    except OSError as exc:
        raise _fail("copy", exc) from exc

    try:
        os.rename(target_tmp, target)
    except OSError as exc:
        raise _fail("final-rename", exc) from exc

    try:
        os.unlink(source_tmp)
    except OSError as exc:
        raise _fail("unlink", exc) from exc


__all__ = [
    "is_directory_target",
    "resolve_destination",
    "rotate_file",
    "rotated_name",
]

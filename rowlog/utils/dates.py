"""Date/time decomposition used for row dates and archive placeholders."""

from __future__ import annotations

import time
from typing import Dict, Optional, Union


def get_date_args(epoch: Optional[float] = None) -> Dict[str, Union[int, str]]:
    """Break ``epoch`` (seconds, local time) into named components.

    Numeric fields (``year``, ``mon``, ``mday``, ``hour``, ``min``, ``sec``,
    ``msec``) are integers; the zero-padded variants (``yyyy``, ``yy``, ``mm``,
    ``dd``, ``hh``, ``mi``, ``ss``) are strings suitable for placeholders.
    """

    if epoch is None:
        epoch = time.time()
    local = time.localtime(epoch)
    hour12 = local.tm_hour % 12 or 12
    return {
        "epoch": int(epoch),
        "year": local.tm_year,
        "mon": local.tm_mon,
        "mday": local.tm_mday,
        "hour": local.tm_hour,
        "min": local.tm_min,
        "sec": local.tm_sec,
        "msec": int(round((epoch - int(epoch)) * 1000)) % 1000,
        "yyyy": f"{local.tm_year:04d}",
        "yy": f"{local.tm_year % 100:02d}",
        "mm": f"{local.tm_mon:02d}",
        "dd": f"{local.tm_mday:02d}",
        "hh": f"{local.tm_hour:02d}",
        "mi": f"{local.tm_min:02d}",
        "ss": f"{local.tm_sec:02d}",
        "hour12": hour12,
        "ampm": "pm" if local.tm_hour >= 12 else "am",
    }


def format_row_date(epoch: float) -> str:
    """Return ``YYYY-MM-DD HH:MI:SS`` for ``epoch`` in local time."""

    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(epoch))


def compact_stamp(epoch: Optional[float] = None) -> str:
    """Return a ``YYYYMMDDHHMISS`` stamp used in rotated file names."""

    if epoch is None:
        epoch = time.time()
    return time.strftime("%Y%m%d%H%M%S", time.localtime(epoch))


__all__ = ["compact_stamp", "format_row_date", "get_date_args"]

"""Row formatting: timestamps, cleansing, serialization and path resolution."""

from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Callable, List, Optional, Sequence

from ..utils.dates import format_row_date
from ..utils.placeholders import substitute
from ..utils.types import ColumnFilter, ComposedRow, PathResolver, Record, Serializer

APPROXIMATE_TICK = 0.05


class ApproximateClock:
    """Process-wide ``time.time()`` snapshot refreshed by a background ticker."""

    def __init__(self, interval: float = APPROXIMATE_TICK) -> None:
        self.interval = interval
        self._now = time.time()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._now = time.time()
            self._thread = threading.Thread(
                target=self._tick, name="rowlog-approx-clock", daemon=True
            )
            self._thread.start()

    def now(self) -> float:
        if self._thread is None:
            self.start()
        return self._now

    def _tick(self) -> None:
        while True:
            time.sleep(self.interval)
            self._now = time.time()


APPROXIMATE_CLOCK = ApproximateClock()


def default_column_filter(value: Any, index: int) -> str:
    """Render ``value`` safely inside one ``[...]`` field."""

    if value is None:
        return ""
    text = str(value).replace("\r", " ").replace("\n", " ")
    return text.replace("][", "")


def default_serializer(columns: Sequence[str], record: Record) -> Optional[str]:
    return "[" + "][".join(columns) + "]" + os.linesep


def default_path_resolver(path: str, record: Record) -> str:
    return substitute(path, record)


def _coerce_timestamp(value: Any) -> float:
    if hasattr(value, "timestamp"):
        return float(value.timestamp())
    return float(value)


class RowFormatter:
    """Turn a merged record into cleansed columns, a line and an output path.

    Hooks left as ``None`` fall back to the module-level defaults above.
    """

    def __init__(
        self,
        columns: Sequence[str],
        *,
        path_resolver: Optional[PathResolver] = None,
        column_filter: Optional[ColumnFilter] = None,
        serializer: Optional[Serializer] = None,
        clock: Optional[Callable[[], float]] = None,
        approximate_clock: ApproximateClock = APPROXIMATE_CLOCK,
    ) -> None:
        self.columns: List[str] = list(columns)
        self.path_resolver: PathResolver = path_resolver or default_path_resolver
        self.column_filter: ColumnFilter = column_filter or default_column_filter
        self.serializer: Serializer = serializer or default_serializer
        self.clock = clock or time.time
        self._approximate_clock = approximate_clock
        self._date_cache: tuple = (None, "")
        self._last_hires = 0.0

    # ------------------------------------------------------------------
    def timestamp(self, record: Record) -> float:
        explicit = record.pop("now", None)
        if explicit is not None:
            return _coerce_timestamp(explicit)
        if record.get("approximate_time"):
            now = max(self._approximate_clock.now(), self._last_hires)
        else:
            now = self.clock()
        self._last_hires = now
        return now

    def row_date(self, epoch: int) -> str:
        cached_epoch, cached_date = self._date_cache
        if cached_epoch != epoch:
            cached_date = format_row_date(epoch)
            self._date_cache = (epoch, cached_date)
        return cached_date

    def populate(self, record: Record) -> Record:
        """Fill the automatic columns on ``record`` in place and return it."""

        now = self.timestamp(record)
        record["hires_epoch"] = f"{now:.3f}"
        record["epoch"] = int(now)
        record["date"] = self.row_date(record["epoch"])

        data = record.get("data")
        if data is None:
            record["data"] = ""
        elif not isinstance(data, (str, int, float, bool)):
            record["data"] = json.dumps(data, separators=(",", ":"), default=str)
        return record

    def compose(self, path: str, record: Record) -> Optional[ComposedRow]:
        """Return the composed row, or ``None`` when the serializer suppressed it."""

        self.populate(record)
        columns = [
            self.column_filter(record.get(name), index)
            for index, name in enumerate(self.columns)
        ]
        line = self.serializer(columns, record)
        if line is None:
            return None
        return ComposedRow(
            line=line,
            columns=columns,
            record=record,
            path=self.path_resolver(path, record),
        )


__all__ = [
    "APPROXIMATE_CLOCK",
    "ApproximateClock",
    "RowFormatter",
    "default_column_filter",
    "default_path_resolver",
    "default_serializer",
]

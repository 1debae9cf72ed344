"""Shared fixtures for the row logger tests."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterator, List

import pytest

from rowlog import Logger

COLUMNS = ["hires_epoch", "date", "hostname", "pid", "category", "code", "msg", "data"]


def fields_of(line: str) -> List[str]:
    """Split a default-format row back into its column values."""

    body = line.rstrip("\r\n")
    return body[1:-1].split("][")


def read_lines(path: Path) -> List[str]:
    return path.read_text("utf-8").splitlines()


@pytest.fixture
def columns() -> List[str]:
    return list(COLUMNS)


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "app.log"


@pytest.fixture
def make_logger(log_path: Path, columns: List[str]) -> Iterator:
    created: List[Logger] = []

    def _make(args=None, path=None, cols=None, **hooks) -> Logger:
        logger = Logger(path or log_path, cols or columns, args, **hooks)
        created.append(logger)
        return logger

    yield _make
    for logger in created:
        logger.close()


@pytest.fixture
def flushed_event():
    """Return ``(event, payloads, listener)`` for ``buffer_flushed`` notifications."""

    event = threading.Event()
    payloads: List[str] = []

    def _listener(payload: str) -> None:
        payloads.append(payload)
        event.set()

    return event, payloads, _listener

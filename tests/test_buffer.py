"""Buffered writes: size/interval flushing, single-flight and shutdown drain."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from pathlib import Path

import pytest

from conftest import read_lines
from rowlog import ConfigurationError
from rowlog.core.buffer import FLUSH_EVENT, BufferManager, append_grouped
from rowlog.core.events import EventEmitter


class _ManualAppender:
    """Appender double whose submitted jobs complete only when the test says so."""

    def __init__(self) -> None:
        self.jobs = []

    def submit(self, fn, *args):
        future: Future = Future()
        self.jobs.append((fn, args, future))
        return future

    def complete(self, index: int = -1) -> None:
        fn, args, future = self.jobs[index]
        fn(*args)
        future.set_result(None)

    def fail(self, index: int = -1) -> None:
        self.jobs[index][2].set_exception(OSError("disk gone"))


def _manager(tmp_path: Path, appender, events, **kwargs) -> BufferManager:
    manager = BufferManager(
        appender,
        events,
        sync_provider=lambda: False,
        max_lines=kwargs.pop("max_lines", 100),
        interval=kwargs.pop("interval", 60.0),
    )
    manager.enable()
    return manager


def test_full_buffer_flushes_exactly_max_lines(make_logger, log_path: Path, flushed_event) -> None:
    event, payloads, listener = flushed_event
    logger = make_logger({"use_buffer": True, "buffer_max_lines": 10, "flush_interval": 30})
    logger.once("buffer_flushed", listener)

    for _ in range(10):
        logger.print(category="debug", code=1, msg="TestBuffer")

    assert event.wait(5)
    assert len(read_lines(log_path)) == 10
    assert payloads[0].count("TestBuffer") == 10

    logger.shutdown()
    assert logger.use_buffer is False
    assert logger.get("sync") is True


def test_partial_buffer_flushes_on_interval(make_logger, log_path: Path, flushed_event) -> None:
    event, _, listener = flushed_event
    logger = make_logger({"use_buffer": True, "buffer_max_lines": 10, "flush_interval": 0.1})
    logger.once("buffer_flushed", listener)

    for _ in range(9):
        logger.print(msg="TestBuffer")

    assert event.wait(5)
    assert len(read_lines(log_path)) == 9


def test_shutdown_drains_pending_lines(make_logger, log_path: Path) -> None:
    logger = make_logger({"use_buffer": True, "buffer_max_lines": 100, "flush_interval": 60})
    for idx in range(5):
        logger.print(msg=f"pending-{idx}")
    assert not log_path.exists()

    logger.shutdown()

    lines = read_lines(log_path)
    assert [line.split("][")[6] for line in lines] == [f"pending-{idx}" for idx in range(5)]
    assert logger.use_buffer is False
    assert logger.get("sync") is True

    logger.shutdown()
    logger.print(msg="after shutdown")
    assert len(read_lines(log_path)) == 6


def test_enable_buffer_again_after_shutdown(make_logger, log_path: Path) -> None:
    logger = make_logger({"sync": True})
    assert logger.use_buffer is False

    logger.enable_buffer(max_lines=50, interval=60)
    logger.print(msg="held")
    assert not log_path.exists()
    assert logger.flush() is True
    assert len(read_lines(log_path)) == 1

    logger.shutdown()
    logger.enable_buffer()
    assert logger.use_buffer is True


def test_sync_mode_flush_writes_inline(make_logger, log_path: Path) -> None:
    flushed = []
    logger = make_logger({"sync": True, "use_buffer": True, "buffer_max_lines": 3, "flush_interval": 60})
    logger.on("buffer_flushed", flushed.append)

    for idx in range(3):
        logger.print(msg=f"row-{idx}")

    assert len(read_lines(log_path)) == 3
    assert len(flushed) == 1


def test_single_flight_flush(tmp_path: Path) -> None:
    appender = _ManualAppender()
    events = EventEmitter()
    payloads = []
    events.on(FLUSH_EVENT, payloads.append)
    target = str(tmp_path / "buffered.log")
    manager = _manager(tmp_path, appender, events)
    try:
        manager.add(target, "a\n")
        manager.add(target, "b\n")
        assert manager.flush() is True
        assert manager.flushing is True

        manager.add(target, "c\n")
        assert manager.flush() is False
        assert len(appender.jobs) == 1

        appender.complete()
        assert manager.flushing is False
        assert payloads == ["a\nb\n"]

        assert manager.flush() is True
        appender.complete()
        assert payloads == ["a\nb\n", "c\n"]
        assert (tmp_path / "buffered.log").read_text("utf-8") == "a\nb\nc\n"
    finally:
        manager.shutdown()


def test_failed_flush_drops_lines_and_unblocks(tmp_path: Path) -> None:
    appender = _ManualAppender()
    events = EventEmitter()
    payloads = []
    events.on(FLUSH_EVENT, payloads.append)
    target = str(tmp_path / "buffered.log")
    manager = _manager(tmp_path, appender, events)
    try:
        manager.add(target, "lost\n")
        manager.flush()
        appender.fail()

        assert manager.flushing is False
        assert len(manager) == 0
        assert payloads == []

        manager.add(target, "kept\n")
        assert manager.flush() is True
    finally:
        manager.shutdown()


def test_empty_flush_is_a_no_op(tmp_path: Path) -> None:
    appender = _ManualAppender()
    manager = _manager(tmp_path, appender, EventEmitter())
    try:
        assert manager.flush() is False
        assert appender.jobs == []
    finally:
        manager.shutdown()


def test_disabled_buffer_refuses_lines(tmp_path: Path) -> None:
    manager = BufferManager(
        _ManualAppender(),
        EventEmitter(),
        sync_provider=lambda: True,
    )
    assert manager.add(str(tmp_path / "x.log"), "line\n") is False
    with pytest.raises(ConfigurationError):
        manager.enable(max_lines=0)


def test_buffered_rows_keep_their_resolved_paths(make_logger, tmp_path: Path) -> None:
    logger = make_logger(
        {"use_buffer": True, "buffer_max_lines": 100, "flush_interval": 60},
        path=tmp_path / "[category].log",
    )

    logger.print(category="error", msg="first")
    logger.print(category="debug", msg="second")
    logger.print(category="error", msg="third")
    logger.close()

    assert sorted(path.name for path in tmp_path.iterdir()) == ["debug.log", "error.log"]
    assert [line.split("][")[6] for line in read_lines(tmp_path / "error.log")] == ["first", "third"]
    assert [line.split("][")[6] for line in read_lines(tmp_path / "debug.log")] == ["second"]


def test_append_grouped_writes_once_per_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import rowlog.core.buffer as buffer_module

    writes = []
    monkeypatch.setattr(buffer_module, "append_sync", lambda path, payload: writes.append((path, payload)))

    append_grouped([("a.log", "1\n"), ("b.log", "2\n"), ("a.log", "3\n")])

    assert writes == [("a.log", "1\n3\n"), ("b.log", "2\n")]


def test_writes_after_shutdown_are_forced_synchronous(make_logger, log_path: Path, tmp_path: Path) -> None:
    mirror = tmp_path / "mirror.log"
    logger = make_logger({"use_buffer": True, "buffer_max_lines": 100, "flush_interval": 60})
    logger.shutdown()

    gate = threading.Event()
    logger._appender.submit(gate.wait, 5)
    try:
        logger.print(msg="after", sync=False, echo=True, echo_path=str(mirror))

        assert "after" in log_path.read_text("utf-8")
        assert "after" in mirror.read_text("utf-8")
    finally:
        gate.set()

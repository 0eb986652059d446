"""Tests for listener.py: the host-facing report listener."""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, BinaryIO

import pytest
from defusedxml import ElementTree

from ngreport.config import ReportConfig
from ngreport.listener import TestngReportListener, capture_error
from ngreport.models.keeper import CapturedError, KeeperStatus
from ngreport.reporters.destination import FileDestination, ReportDestination

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from ngreport.adapters.base import NodeIdentity

    from conftest import ManualClock

    Ident = Callable[[str, str], NodeIdentity]


class _MemoryDestination(ReportDestination):
    """Keeps the written bytes after the stream is closed."""

    def __init__(self) -> None:
        self.data = b""
        self.opened = 0

    @property
    def name(self) -> str:
        return "memory"

    def open(self) -> BinaryIO:
        self.opened += 1
        destination = self

        class _Buffer(io.BytesIO):
            def close(self) -> None:
                if not self.closed:
                    destination.data = self.getvalue()
                super().close()

        return _Buffer()


class _BrokenDestination(ReportDestination):
    @property
    def name(self) -> str:
        return "broken"

    def open(self) -> BinaryIO:
        raise PermissionError("read-only file system")


class _FailingStream(io.BytesIO):
    def __init__(self) -> None:
        super().__init__()
        self.closed_by_writer = False

    def write(self, data: bytes) -> int:  # type: ignore[override]
        raise OSError("disk full")

    def close(self) -> None:
        self.closed_by_writer = True
        super().close()


class _FailingWriteDestination(ReportDestination):
    def __init__(self) -> None:
        self.stream = _FailingStream()

    @property
    def name(self) -> str:
        return "failing"

    def open(self) -> BinaryIO:
        return self.stream


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as e:
        return e


@pytest.fixture
def destination() -> _MemoryDestination:
    return _MemoryDestination()


@pytest.fixture
def listener(destination: _MemoryDestination, clock: ManualClock) -> TestngReportListener:
    return TestngReportListener(destination, clock=clock)


# ── capture_error ────────────────────────────────────────────────


class TestCaptureError:
    def test_passes_captured_error_through(self) -> None:
        error = CapturedError(type_name="X")
        assert capture_error(error) is error

    def test_from_exception(self) -> None:
        error = capture_error(_raised(ValueError("bad")))
        assert error.type_name == "ValueError"
        assert error.message == "bad"

    def test_from_exc_info(self) -> None:
        exc = _raised(RuntimeError("oops"))
        error = capture_error((RuntimeError, exc, exc.__traceback__))
        assert error.type_name == "RuntimeError"
        assert "oops" in error.stack_trace


# ── Lifecycle ────────────────────────────────────────────────────


class TestListenerLifecycle:
    def test_close_writes_report(
        self,
        listener: TestngReportListener,
        destination: _MemoryDestination,
        clock: ManualClock,
        ident: Ident,
    ) -> None:
        test1, test2 = ident("A", "test1"), ident("A", "test2")
        clock.at(0)
        listener.start_test(test1)
        clock.at(5)
        listener.start_test(test2)
        clock.at(10)
        listener.end_test(test1)
        clock.at(12)
        listener.add_failure(test2, _raised(AssertionError("boom")))
        clock.at(15)
        listener.end_test(test2)

        listener.close()

        root = ElementTree.fromstring(destination.data)
        assert root.get("total") == "2"
        assert root.get("passed") == "1"
        assert root.get("failed") == "1"
        assert root.find("suite").get("duration-ms") == "0.015"
        method = root.find(".//test-method[@name='test2']")
        assert method.get("status") == "FAIL"
        assert method.get("duration-ms") == "0.007"
        assert "boom" in method.findtext("exception/message")

    def test_add_error_marks_skip(self, listener: TestngReportListener, ident: Ident) -> None:
        test = ident("A", "t")
        listener.start_test(test)
        listener.add_error(test, _raised(KeyError("k")))
        listener.end_test(test)

        keeper = listener.registry.keeper("A", "t")
        assert keeper is not None
        assert keeper.status is KeeperStatus.SKIP
        assert listener.summary().skipped == 1

    def test_close_is_idempotent(
        self,
        listener: TestngReportListener,
        destination: _MemoryDestination,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        listener.close()
        with caplog.at_level(logging.WARNING, logger="ngreport.listener"):
            listener.close()

        assert destination.opened == 1
        assert listener.closed
        assert listener.written
        assert "already written" in caplog.text

    def test_events_after_close_are_ignored(
        self,
        listener: TestngReportListener,
        ident: Ident,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        listener.close()
        with caplog.at_level(logging.WARNING, logger="ngreport.listener"):
            listener.start_test(ident("A", "late"))
            listener.add_failure(ident("A", "late"), CapturedError(type_name="X"))
            listener.end_test(ident("A", "late"))

        assert len(listener.registry) == 0
        assert "after close()" in caplog.text


# ── Failure handling ─────────────────────────────────────────────


class TestListenerFailures:
    def test_open_failure_is_logged_not_raised(
        self, ident: Ident, caplog: pytest.LogCaptureFixture
    ) -> None:
        listener = TestngReportListener(_BrokenDestination())
        listener.start_test(ident("A", "t"))
        listener.end_test(ident("A", "t"))

        with caplog.at_level(logging.ERROR, logger="ngreport.listener"):
            listener.close()

        assert "Failed to write TestNG report to broken" in caplog.text
        assert listener.closed
        assert not listener.written

    def test_write_failure_still_closes_stream(self, ident: Ident) -> None:
        destination = _FailingWriteDestination()
        listener = TestngReportListener(destination)
        listener.start_test(ident("A", "t"))

        listener.close()

        assert destination.stream.closed_by_writer
        assert not listener.written


# ── Construction ─────────────────────────────────────────────────


class TestFromConfig:
    def test_builds_file_destination(self, tmp_path: Path) -> None:
        config = ReportConfig(output_dir="out", file_name="TEST-$(suite).xml")

        listener = TestngReportListener.from_config(config, tmp_path)

        assert isinstance(listener.destination, FileDestination)
        assert listener.destination.path == tmp_path / "out" / "TEST-test.xml"

    def test_applies_suite_name_and_filters(self, tmp_path: Path) -> None:
        config = ReportConfig(
            output_dir=".",
            suite_name="Nightly",
            filter_traces=True,
            trace_filters=["secret_helper.py"],
        )
        listener = TestngReportListener.from_config(config, tmp_path)

        assert listener.reporter.suite_name == "Nightly"
        assert listener.reporter.trace_filter is not None
        assert listener.reporter.trace_filter("a\nsecret_helper.py\n") == "a\n"

    def test_filtering_disabled(self, tmp_path: Path) -> None:
        config = ReportConfig(filter_traces=False)
        listener = TestngReportListener.from_config(config, tmp_path)

        assert listener.reporter.trace_filter is None

    def test_end_to_end_file(self, tmp_path: Path, ident: Ident) -> None:
        listener = TestngReportListener.from_config(ReportConfig(output_dir="reports"), tmp_path)
        listener.start_test(ident("A", "t"))
        listener.end_test(ident("A", "t"))
        listener.close()

        report = tmp_path / "reports" / "testng-results.xml"
        assert report.is_file()
        assert ElementTree.fromstring(report.read_bytes()).get("passed") == "1"

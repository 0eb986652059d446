"""Host-facing listener that records a run and emits its TestNG report."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

from ngreport.models.keeper import CapturedError, ExcInfo, ProblemKind
from ngreport.registry import RegistrySummary, ResultRegistry
from ngreport.reporters.destination import FileDestination, resolve_report_path
from ngreport.reporters.testng_xml import DEFAULT_SUITE_NAME, TestNGXMLReporter
from ngreport.reporters.trace_filter import TraceFilter

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ngreport.adapters.base import TestIdentity
    from ngreport.config import ReportConfig
    from ngreport.reporters.destination import ReportDestination

logger = logging.getLogger(__name__)

ErrorLike: TypeAlias = CapturedError | BaseException | ExcInfo


def capture_error(error: ErrorLike) -> CapturedError:
    """Normalize an exception, ``exc_info`` triple or captured error."""
    if isinstance(error, CapturedError):
        return error
    if isinstance(error, BaseException):
        return CapturedError.from_exception(error)
    return CapturedError.from_exc_info(error)


class TestngReportListener:
    """Collects lifecycle events of one run and writes the report on close.

    The host calls, per test occurrence, ``start_test``, at most one of
    ``add_error``/``add_failure``, then ``end_test``; and finally ``close``
    exactly once. Reporting problems never propagate into the host run.

    Args:
        destination: Where the report bytes go.
        suite_name: Name of the umbrella suite in the report.
        filter_traces: Strip framework noise lines from stack traces.
        trace_filters: Extra noise substrings on top of the defaults.
        clock: Millisecond clock, for deterministic tests.
    """

    __test__ = False

    def __init__(
        self,
        destination: ReportDestination,
        *,
        suite_name: str = DEFAULT_SUITE_NAME,
        filter_traces: bool = True,
        trace_filters: Iterable[str] = (),
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.destination = destination
        self.registry = ResultRegistry(clock=clock)
        self.reporter = TestNGXMLReporter(
            suite_name=suite_name,
            trace_filter=TraceFilter(trace_filters) if filter_traces else None,
        )
        self._closed = False
        self._written = False

    @classmethod
    def from_config(
        cls,
        config: ReportConfig,
        root: str | Path = ".",
        *,
        clock: Callable[[], int] | None = None,
    ) -> TestngReportListener:
        """Build a file-backed listener from the ``report`` config section."""
        report_dir = Path(root) / config.output_dir
        return cls(
            FileDestination(resolve_report_path(report_dir, config.file_name)),
            suite_name=config.suite_name,
            filter_traces=config.filter_traces,
            trace_filters=config.trace_filters,
            clock=clock,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def written(self) -> bool:
        """Whether ``close()`` emitted the report successfully."""
        return self._written

    def start_test(self, identity: TestIdentity) -> None:
        if self._ignored("start_test", identity):
            return
        self.registry.on_test_start(identity)

    def add_error(self, identity: TestIdentity, error: ErrorLike) -> None:
        self.add_problem(identity, ProblemKind.ERROR, error)

    def add_failure(self, identity: TestIdentity, error: ErrorLike) -> None:
        self.add_problem(identity, ProblemKind.FAILURE, error)

    def add_problem(self, identity: TestIdentity, kind: ProblemKind, error: ErrorLike) -> None:
        if self._ignored(f"add_{kind.value}", identity):
            return
        self.registry.on_problem(identity, kind, capture_error(error))

    def end_test(self, identity: TestIdentity) -> None:
        if self._ignored("end_test", identity):
            return
        self.registry.on_test_end(identity)

    def summary(self) -> RegistrySummary:
        return self.registry.summary()

    def close(self) -> None:
        """Emit the report. Failures are logged, never raised."""
        if self._closed:
            logger.warning("Report for %s already written, ignoring close()", self.destination.name)
            return
        self._closed = True
        try:
            self.reporter.generate(self.registry, self.destination)
        except (OSError, ValueError):
            logger.exception("Failed to write TestNG report to %s", self.destination.name)
        else:
            self._written = True

    def _ignored(self, event: str, identity: TestIdentity) -> bool:
        if self._closed:
            logger.warning("%s(%r) received after close(), ignoring", event, identity)
        return self._closed

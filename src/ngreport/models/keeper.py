"""Per-test result records and per-suite rollups."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import TypeAlias

ExcInfo: TypeAlias = tuple[type[BaseException], BaseException, TracebackType | None]

NULL_MESSAGE = "<null>"


class KeeperStatus(Enum):
    """TestNG status of a single test occurrence."""

    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"


class ProblemKind(Enum):
    """Kind of problem reported by the host test driver."""

    ERROR = "error"
    FAILURE = "failure"

    @property
    def status(self) -> KeeperStatus:
        """TestNG status a problem of this kind maps to."""
        if self is ProblemKind.ERROR:
            return KeeperStatus.SKIP
        return KeeperStatus.FAIL


def qualified_name(cls: type) -> str:
    """Return ``module.QualName`` for *cls*, without the ``builtins`` prefix."""
    module = cls.__module__
    if module in {"builtins", "__builtin__"}:
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


@dataclass(frozen=True)
class CapturedError:
    """Error detail captured when a test reports a problem."""

    type_name: str
    """Qualified type name of the raised exception."""

    message: str | None = None
    """Exception message, ``None`` when the exception carried none."""

    stack_trace: str = ""
    """Full rendered traceback text."""

    @property
    def safe_message(self) -> str:
        """Type name and message, with a placeholder for a missing message."""
        message = NULL_MESSAGE if self.message is None else self.message
        return f"{self.type_name}: {message}"

    @classmethod
    def from_exc_info(cls, exc_info: ExcInfo) -> CapturedError:
        """Build from a ``sys.exc_info()``-style triple."""
        exc_type, exc, tb = exc_info
        # Only an exception raised without arguments has no message.
        message = str(exc) if exc.args else None
        return cls(
            type_name=qualified_name(exc_type),
            message=message,
            stack_trace="".join(traceback.format_exception(exc_type, exc, tb)),
        )

    @classmethod
    def from_exception(cls, exc: BaseException) -> CapturedError:
        """Build from a raised exception instance."""
        return cls.from_exc_info((type(exc), exc, exc.__traceback__))


@dataclass
class ResultKeeper:
    """Identity, timing window, status and error of one test occurrence."""

    test_name: str
    start_time: int
    end_time: int | None = None
    status: KeeperStatus = KeeperStatus.PASS
    error: CapturedError | None = None
    kind: ProblemKind | None = None
    timed: bool = False

    def finish(self, now: int) -> bool:
        """Write the end time once. Returns ``False`` if already timed."""
        if self.timed:
            return False
        self.end_time = max(now, self.start_time)
        self.timed = True
        return True

    def record_problem(self, kind: ProblemKind, error: CapturedError) -> ProblemKind | None:
        """Store *error*; a later problem overwrites an earlier one.

        Returns the kind of the problem that was replaced, if any.
        """
        previous = self.kind
        self.error = error
        self.kind = kind
        self.status = kind.status
        return previous

    @property
    def failed(self) -> bool:
        return self.status is not KeeperStatus.PASS

    @property
    def finished_at(self) -> int:
        # An occurrence that was never ended is rendered as zero-length.
        return self.start_time if self.end_time is None else self.end_time

    @property
    def duration_ms(self) -> int:
        return self.finished_at - self.start_time


@dataclass
class SuiteAggregate:
    """Timing bounds and problem counters of one suite.

    A bound of ``None`` means nothing has been seen yet. Bounds only
    widen: the start moves earlier and the end moves later.
    """

    start_time: int | None = None
    end_time: int | None = None
    failure_count: int = 0
    error_count: int = 0

    def include_start(self, timestamp: int) -> None:
        if self.start_time is None or timestamp < self.start_time:
            self.start_time = timestamp

    def include_end(self, timestamp: int) -> None:
        if self.end_time is None or timestamp > self.end_time:
            self.end_time = timestamp

    @property
    def empty(self) -> bool:
        return self.start_time is None

    def count(self, kind: ProblemKind, step: int = 1) -> None:
        """Move the counter matching *kind* by *step*."""
        if kind is ProblemKind.ERROR:
            self.error_count += step
        else:
            self.failure_count += step

    @property
    def finished_at(self) -> int:
        if self.start_time is None:
            return 0 if self.end_time is None else self.end_time
        if self.end_time is None:
            return self.start_time
        return max(self.end_time, self.start_time)

    @property
    def duration_ms(self) -> int:
        if self.start_time is None:
            return 0
        return self.finished_at - self.start_time

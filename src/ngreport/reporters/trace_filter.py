"""Stack-trace noise filtering."""

from __future__ import annotations

from collections.abc import Iterable

# Frames from the test drivers themselves. Matched against the line with
# path separators normalized to ``/``.
DEFAULT_TRACE_FILTERS: tuple[str, ...] = (
    "unittest/case.py",
    "unittest/suite.py",
    "unittest/result.py",
    "unittest/runner.py",
    "unittest/main.py",
    "unittest/async_case.py",
    "_pytest/",
    "pluggy/",
    "ngreport/adapters/",
)


def filter_trace(trace: str, filters: Iterable[str] = DEFAULT_TRACE_FILTERS) -> str:
    """Drop every line of *trace* containing one of *filters*.

    Kept lines are returned unchanged and in their original order.
    """
    patterns = tuple(filters)
    if not patterns:
        return trace
    kept = [
        line
        for line in trace.splitlines(keepends=True)
        if not any(p in line.replace("\\", "/") for p in patterns)
    ]
    return "".join(kept)


class TraceFilter:
    """A configured set of noise substrings, applied with :func:`filter_trace`."""

    def __init__(self, extra: Iterable[str] = (), *, defaults: bool = True) -> None:
        base = DEFAULT_TRACE_FILTERS if defaults else ()
        self.filters: tuple[str, ...] = (*base, *(f for f in extra if f))

    def __call__(self, trace: str) -> str:
        return filter_trace(trace, self.filters)

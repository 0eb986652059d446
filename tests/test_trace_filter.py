"""Tests for reporters/trace_filter.py."""

from __future__ import annotations

from ngreport.reporters.trace_filter import DEFAULT_TRACE_FILTERS, TraceFilter, filter_trace

TRACE = (
    "Traceback (most recent call last):\n"
    '  File "/usr/lib/python3.12/unittest/case.py", line 58, in testPartExecutor\n'
    "    yield\n"
    '  File "/work/tests/test_math.py", line 12, in test_add\n'
    "    self.assertEqual(add(1, 1), 3)\n"
    '  File "/venv/lib/site-packages/_pytest/python.py", line 159, in pytest_pyfunc_call\n'
    "AssertionError: 2 != 3\n"
)


def test_drops_framework_lines_and_keeps_order() -> None:
    result = filter_trace(TRACE)

    assert result == (
        "Traceback (most recent call last):\n"
        "    yield\n"
        '  File "/work/tests/test_math.py", line 12, in test_add\n'
        "    self.assertEqual(add(1, 1), 3)\n"
        "AssertionError: 2 != 3\n"
    )


def test_windows_separators_are_matched() -> None:
    trace = '  File "C:\\Python312\\Lib\\unittest\\case.py", line 58\nkept\n'
    assert filter_trace(trace) == "kept\n"


def test_empty_filter_set_is_identity() -> None:
    assert filter_trace(TRACE, ()) == TRACE


def test_trace_without_trailing_newline() -> None:
    assert filter_trace("first\nsecond", ("first",)) == "second"


def test_default_filters_cover_both_runners() -> None:
    assert any("unittest" in f for f in DEFAULT_TRACE_FILTERS)
    assert "_pytest/" in DEFAULT_TRACE_FILTERS


class TestTraceFilter:
    def test_extra_filters_extend_defaults(self) -> None:
        trace_filter = TraceFilter(["test_math.py"])

        assert trace_filter.filters[: len(DEFAULT_TRACE_FILTERS)] == DEFAULT_TRACE_FILTERS
        assert "test_math.py" not in trace_filter(TRACE)
        assert "unittest/case.py" not in trace_filter(TRACE)

    def test_without_defaults(self) -> None:
        trace_filter = TraceFilter(["AssertionError"], defaults=False)
        result = trace_filter(TRACE)

        assert "unittest/case.py" in result
        assert "AssertionError" not in result

    def test_empty_extra_entries_are_ignored(self) -> None:
        trace_filter = TraceFilter(["", "x"], defaults=False)
        assert trace_filter.filters == ("x",)

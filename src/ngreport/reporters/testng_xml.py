"""TestNG XML reporter: streams ``testng-results`` documents.

The document is produced in a single traversal of a ``ResultRegistry``
with ``XMLGenerator``, so nothing beyond the registry itself is held in
memory. All suites discovered at runtime become ``<class>`` elements
under one umbrella ``<suite>``/``<test>`` pair.
"""

from __future__ import annotations

import io
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO
from xml.sax.saxutils import XMLGenerator

if TYPE_CHECKING:
    from collections.abc import Callable

    from ngreport.models.keeper import ResultKeeper
    from ngreport.registry import ResultRegistry
    from ngreport.reporters.destination import ReportDestination

logger = logging.getLogger(__name__)

DEFAULT_SUITE_NAME = "Default suite"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
_ENCODING = "utf-8"
_INDENT = "  "

# Characters XML 1.0 cannot carry, not even escaped.
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def format_seconds(duration_ms: int) -> str:
    """Render milliseconds as seconds with three decimals."""
    return f"{duration_ms / 1000:.3f}"


def format_timestamp(timestamp_ms: int) -> str:
    """Render a millisecond timestamp in local time."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(TIMESTAMP_FORMAT)


def _clean(text: str) -> str:
    return _ILLEGAL_XML_CHARS.sub("", text)


class _IndentingWriter:
    """Thin layer over ``XMLGenerator`` adding two-space indentation."""

    def __init__(self, stream: BinaryIO) -> None:
        self._gen = XMLGenerator(stream, encoding=_ENCODING, short_empty_elements=True)
        self._has_children: list[bool] = []

    def start_document(self) -> None:
        self._gen.startDocument()

    def end_document(self) -> None:
        self._gen.ignorableWhitespace("\n")
        self._gen.endDocument()

    def start(self, tag: str, attrs: dict[str, str] | None = None) -> None:
        if self._has_children:
            self._has_children[-1] = True
            self._gen.ignorableWhitespace("\n" + _INDENT * len(self._has_children))
        cleaned = {key: _clean(value) for key, value in (attrs or {}).items()}
        self._gen.startElement(tag, cleaned)
        self._has_children.append(False)

    def end(self, tag: str) -> None:
        if self._has_children.pop():
            self._gen.ignorableWhitespace("\n" + _INDENT * len(self._has_children))
        self._gen.endElement(tag)

    def empty(self, tag: str, attrs: dict[str, str] | None = None) -> None:
        self.start(tag, attrs)
        self.end(tag)

    def text(self, tag: str, content: str) -> None:
        self.start(tag)
        self._gen.characters(_clean(content))
        self.end(tag)


class TestNGXMLReporter:
    """Generate TestNG XML reports from a result registry.

    Args:
        suite_name: Name of the umbrella ``<suite>`` and ``<test>`` elements.
        trace_filter: Optional callable applied to every stack trace before
            it is written, e.g. a ``TraceFilter``.
    """

    __test__ = False

    def __init__(
        self,
        suite_name: str = DEFAULT_SUITE_NAME,
        trace_filter: Callable[[str], str] | None = None,
    ) -> None:
        self.suite_name = suite_name
        self.trace_filter = trace_filter

    def generate(
        self, registry: ResultRegistry, destination: ReportDestination
    ) -> ReportDestination:
        """Write the report to *destination*.

        The destination is opened once and closed on every exit path.
        ``OSError`` from opening, writing or closing propagates.
        """
        with destination.open() as stream:
            self.write(registry, stream)
        logger.info("TestNG report written to %s", destination.name)
        return destination

    def generate_bytes(self, registry: ResultRegistry) -> bytes:
        """Return the TestNG XML document as bytes."""
        buffer = io.BytesIO()
        self.write(registry, buffer)
        return buffer.getvalue()

    def write(self, registry: ResultRegistry, stream: BinaryIO) -> None:
        """Stream the complete document for *registry* into *stream*."""
        summary = registry.summary()
        overall = registry.overall
        if overall.empty:
            started = finished = registry.now()
        else:
            started, finished = overall.start_time or 0, overall.finished_at
        umbrella = {
            "name": self.suite_name,
            "duration-ms": format_seconds(finished - started),
            "started-at": format_timestamp(started),
            "finished-at": format_timestamp(finished),
        }

        out = _IndentingWriter(stream)
        out.start_document()
        out.start(
            "testng-results",
            {
                "skipped": str(summary.skipped),
                "failed": str(summary.failed),
                "total": str(summary.total),
                "passed": str(summary.passed),
            },
        )
        out.empty("reporter-output")
        out.start("suite", umbrella)
        out.empty("groups")
        out.start("test", umbrella)
        for suite_name, keepers in registry.suites():
            out.start("class", {"name": suite_name})
            for keeper in keepers:
                self._write_case(out, keeper)
            out.end("class")
        out.end("test")
        out.end("suite")
        out.end("testng-results")
        out.end_document()

    def _write_case(self, out: _IndentingWriter, keeper: ResultKeeper) -> None:
        out.start(
            "test-method",
            {
                "status": keeper.status.value,
                "signature": keeper.test_name,
                "name": keeper.test_name,
                "duration-ms": format_seconds(keeper.duration_ms),
                "started-at": format_timestamp(keeper.start_time),
                "finished-at": format_timestamp(keeper.finished_at),
            },
        )
        error = keeper.error
        if keeper.failed and error is not None:
            trace = error.stack_trace
            if self.trace_filter is not None:
                trace = self.trace_filter(trace)
            out.start("exception", {"class": error.type_name})
            out.text("message", error.safe_message)
            out.text("full-stacktrace", trace)
            out.end("exception")
        out.end("test-method")

"""Read back a written ``testng-results`` document into summary models."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree
from defusedxml.ElementTree import ParseError as DefusedParseError

from ngreport.models.keeper import KeeperStatus

if TYPE_CHECKING:
    from pathlib import Path
    from xml.etree.ElementTree import Element as XmlElement

logger = logging.getLogger(__name__)

_ROOT_TAG = "testng-results"


class ReportParseError(ValueError):
    """Raised when a file is not a readable TestNG results document."""


@dataclass
class MethodSummary:
    """One ``<test-method>`` entry."""

    name: str
    status: KeeperStatus
    duration_s: float
    exception_class: str | None = None
    message: str | None = None


@dataclass
class ClassSummary:
    """One ``<class>`` entry and its methods."""

    name: str
    methods: list[MethodSummary] = field(default_factory=list)

    def count(self, status: KeeperStatus) -> int:
        return sum(1 for m in self.methods if m.status is status)

    @property
    def duration_s(self) -> float:
        return sum(m.duration_s for m in self.methods)


@dataclass
class ReportSummary:
    """Top-level counts and per-class breakdown of a TestNG report."""

    total: int
    passed: int
    failed: int
    skipped: int
    suite_name: str = ""
    duration_s: float = 0.0
    classes: list[ClassSummary] = field(default_factory=list)

    @property
    def problems(self) -> list[tuple[str, MethodSummary]]:
        """``(class_name, method)`` for every non-passing method."""
        return [
            (cls.name, method)
            for cls in self.classes
            for method in cls.methods
            if method.status is not KeeperStatus.PASS
        ]


def _int_attr(element: XmlElement, key: str) -> int:
    value = element.get(key)
    if value is None:
        raise ReportParseError(f"<{element.tag}> is missing the '{key}' attribute")
    try:
        return int(value)
    except ValueError as e:
        raise ReportParseError(f"<{element.tag} {key}={value!r}> is not an integer") from e


def _seconds_attr(element: XmlElement) -> float:
    # The attribute is named duration-ms but carries seconds.
    try:
        return float(element.get("duration-ms", "0"))
    except ValueError:
        return 0.0


def _parse_status(value: str | None) -> KeeperStatus:
    try:
        return KeeperStatus(value)
    except ValueError as e:
        raise ReportParseError(f"Unknown test-method status: {value!r}") from e


def _parse_method(elem: XmlElement) -> MethodSummary:
    exception = elem.find("exception")
    exception_class = None
    message = None
    if exception is not None:
        exception_class = exception.get("class")
        message = exception.findtext("message")
    return MethodSummary(
        name=elem.get("name", ""),
        status=_parse_status(elem.get("status")),
        duration_s=_seconds_attr(elem),
        exception_class=exception_class,
        message=message,
    )


def parse_report(xml_text: str | bytes) -> ReportSummary:
    """Parse a TestNG results document.

    Raises:
        ReportParseError: If the document is malformed or not a
            ``testng-results`` document.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except DefusedParseError as e:
        raise ReportParseError(f"Malformed XML: {e}") from e
    except DefusedXmlException as e:
        raise ReportParseError(f"Refusing unsafe XML: {e}") from e

    if root.tag != _ROOT_TAG:
        raise ReportParseError(f"Expected <{_ROOT_TAG}> root element, got <{root.tag}>")

    summary = ReportSummary(
        total=_int_attr(root, "total"),
        passed=_int_attr(root, "passed"),
        failed=_int_attr(root, "failed"),
        skipped=_int_attr(root, "skipped"),
    )

    suite = root.find("suite")
    if suite is not None:
        summary.suite_name = suite.get("name", "")
        summary.duration_s = _seconds_attr(suite)

    for class_elem in root.iter("class"):
        summary.classes.append(
            ClassSummary(
                name=class_elem.get("name", ""),
                methods=[_parse_method(m) for m in class_elem.findall("test-method")],
            )
        )

    logger.debug(
        "Parsed TestNG report: %d total, %d classes", summary.total, len(summary.classes)
    )
    return summary


def load_report(path: Path) -> ReportSummary:
    """Read and parse the report at *path*.

    Raises:
        ReportParseError: If the file cannot be read or parsed.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ReportParseError(f"Cannot read {path}: {e}") from e
    return parse_report(data)

"""pytest plugin writing a TestNG report (``--testng-xml=PATH``).

Problems are taken from ``pytest_runtest_makereport`` so the real
exception is captured. An ``AssertionError`` raised by the test body is a
failure; anything else, and every setup or teardown problem, is an error.
Skips and expected failures are not problems.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest

from ngreport.adapters.base import IdentityError, NodeIdentity
from ngreport.listener import TestngReportListener
from ngreport.models.keeper import ProblemKind
from ngreport.reporters.destination import FileDestination
from ngreport.reporters.testng_xml import DEFAULT_SUITE_NAME

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

_PLUGIN_NAME = "ngreport-testng-xml"


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("terminal reporting")
    group.addoption(
        "--testng-xml",
        action="store",
        dest="testng_xml",
        metavar="path",
        default=None,
        help="Create a TestNG-style XML report file at the given path.",
    )
    group.addoption(
        "--testng-suite-name",
        action="store",
        dest="testng_suite_name",
        default=DEFAULT_SUITE_NAME,
        help="Name of the umbrella suite in the TestNG report.",
    )
    group.addoption(
        "--testng-no-filter-traces",
        action="store_false",
        dest="testng_filter_traces",
        default=True,
        help="Keep framework frames in TestNG report stack traces.",
    )


def pytest_configure(config: pytest.Config) -> None:
    path = config.getoption("testng_xml")
    # Distributed workers report through the controller.
    if not path or hasattr(config, "workerinput"):
        return
    listener = TestngReportListener(
        FileDestination(path),
        suite_name=config.getoption("testng_suite_name"),
        filter_traces=config.getoption("testng_filter_traces"),
    )
    config.pluginmanager.register(TestngPlugin(listener), _PLUGIN_NAME)


def pytest_unconfigure(config: pytest.Config) -> None:
    plugin = config.pluginmanager.get_plugin(_PLUGIN_NAME)
    if plugin is not None:
        config.pluginmanager.unregister(plugin)


def _expected_outcome(item: Any, excinfo: Any) -> bool:
    if excinfo.errisinstance((pytest.skip.Exception, pytest.xfail.Exception)):
        return True
    return item.get_closest_marker("xfail") is not None


class TestngPlugin:
    """Forwards pytest test-phase hooks to a ``TestngReportListener``."""

    __test__ = False

    def __init__(
        self,
        listener: TestngReportListener,
        identity_factory: Callable[[str], NodeIdentity] = NodeIdentity,
    ) -> None:
        self.listener = listener
        self._identity = identity_factory

    def pytest_runtest_logstart(self, nodeid: str, location: Any) -> None:
        identity = self._resolve(nodeid)
        if identity is not None:
            self.listener.start_test(identity)

    def pytest_runtest_makereport(self, item: Any, call: Any) -> None:
        excinfo = call.excinfo
        if excinfo is None or _expected_outcome(item, excinfo):
            return
        if call.when == "call" and excinfo.errisinstance(AssertionError):
            kind = ProblemKind.FAILURE
        else:
            kind = ProblemKind.ERROR
        identity = self._resolve(item.nodeid)
        if identity is not None:
            self.listener.add_problem(identity, kind, (excinfo.type, excinfo.value, excinfo.tb))

    def pytest_runtest_logfinish(self, nodeid: str, location: Any) -> None:
        identity = self._resolve(nodeid)
        if identity is not None:
            self.listener.end_test(identity)

    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        self.listener.close()

    def pytest_terminal_summary(self, terminalreporter: Any) -> None:
        terminalreporter.write_sep("-", f"generated TestNG xml file: {self.listener.destination.name}")

    def _resolve(self, nodeid: str) -> NodeIdentity | None:
        try:
            return self._identity(nodeid)
        except IdentityError as e:
            logger.warning("Not reporting %s: %s", nodeid, e)
            return None

"""unittest integration: a TestResult and TestRunner feeding the listener."""

from __future__ import annotations

import logging
import unittest
from typing import TYPE_CHECKING, Any

from ngreport.adapters.base import IdentityError, TestIdentity, identity_for
from ngreport.models.keeper import ExcInfo, ProblemKind

if TYPE_CHECKING:
    from ngreport.listener import TestngReportListener

logger = logging.getLogger(__name__)


class TestngTestResult(unittest.TextTestResult):
    """Text result that also forwards every lifecycle event to a listener.

    Sub-test failures are charged to the enclosing test. Class and module
    fixture errors arrive without a start, so they are reported as a
    complete occurrence of their own.
    """

    __test__ = False

    listener: TestngReportListener | None = None

    def startTest(self, test: unittest.TestCase) -> None:  # noqa: N802
        super().startTest(test)
        identity = self._identity(test)
        if identity is not None and self.listener is not None:
            self.listener.start_test(identity)

    def stopTest(self, test: unittest.TestCase) -> None:  # noqa: N802
        identity = self._identity(test)
        if identity is not None and self.listener is not None:
            self.listener.end_test(identity)
        super().stopTest(test)

    def addError(self, test: unittest.TestCase, err: Any) -> None:  # noqa: N802
        super().addError(test, err)
        self._problem(test, ProblemKind.ERROR, err)

    def addFailure(self, test: unittest.TestCase, err: Any) -> None:  # noqa: N802
        super().addFailure(test, err)
        self._problem(test, ProblemKind.FAILURE, err)

    def addSubTest(  # noqa: N802
        self, test: unittest.TestCase, subtest: unittest.TestCase, err: Any
    ) -> None:
        super().addSubTest(test, subtest, err)
        if err is None:
            return
        if issubclass(err[0], test.failureException):
            self._problem(test, ProblemKind.FAILURE, err)
        else:
            self._problem(test, ProblemKind.ERROR, err)

    def _problem(self, test: Any, kind: ProblemKind, err: ExcInfo) -> None:
        identity = self._identity(test)
        if identity is None or self.listener is None:
            return
        if isinstance(test, unittest.TestCase):
            self.listener.add_problem(identity, kind, err)
            return
        self.listener.start_test(identity)
        self.listener.add_problem(identity, kind, err)
        self.listener.end_test(identity)

    def _identity(self, test: Any) -> TestIdentity | None:
        try:
            return identity_for(test)
        except IdentityError as e:
            logger.warning("Not reporting %r: %s", test, e)
            return None


class TestngTestRunner(unittest.TextTestRunner):
    """Text runner that writes a TestNG report once the run completes.

    Example::

        listener = TestngReportListener(FileDestination("testng-results.xml"))
        TestngTestRunner(listener=listener, verbosity=2).run(suite)
    """

    __test__ = False

    resultclass = TestngTestResult

    def __init__(self, *args: Any, listener: TestngReportListener, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.listener = listener

    def _makeResult(self) -> unittest.TextTestResult:  # noqa: N802
        result = super()._makeResult()
        if isinstance(result, TestngTestResult):
            result.listener = self.listener
        return result

    def run(self, test: unittest.TestSuite | unittest.TestCase) -> unittest.TestResult:
        try:
            return super().run(test)
        finally:
            self.listener.close()

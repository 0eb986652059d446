"""Test identity capability and its adapters.

The registry only needs two things from a host test object: the suite it
belongs to (its declaring type) and its name. Each adapter resolves both
once, at construction, and rejects tests without a usable name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from ngreport.models.keeper import qualified_name


class IdentityError(ValueError):
    """Raised when a test object does not yield a usable name."""


@runtime_checkable
class SupportsCustomName(Protocol):
    """Data-driven tests that report their own display name."""

    def custom_test_name(self) -> str: ...


class TestIdentity(ABC):
    """Suite and test name of one host test object."""

    __test__ = False

    @property
    @abstractmethod
    def suite_name(self) -> str:
        """Grouping key, the qualified name of the declaring type."""

    @property
    @abstractmethod
    def test_name(self) -> str:
        """Name of the test within its suite."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.suite_name!r}, {self.test_name!r})"


def _require_name(name: str, test: object) -> str:
    if not name:
        raise IdentityError(f"Test {test!r} has an empty name")
    return name


class CaseIdentity(TestIdentity):
    """Identity of a plain ``unittest.TestCase`` (or look-alike).

    Non-``TestCase`` placeholders, such as the holder unittest reports
    class-setup errors against, fall back to their string form.
    """

    def __init__(self, test: Any) -> None:
        self._suite_name = qualified_name(type(test))
        name = getattr(test, "_testMethodName", "") or str(test)
        self._test_name = _require_name(name, test)

    @property
    def suite_name(self) -> str:
        return self._suite_name

    @property
    def test_name(self) -> str:
        return self._test_name


class CustomNamedIdentity(TestIdentity):
    """Identity of a data-driven test that supplies its own name."""

    def __init__(self, test: SupportsCustomName) -> None:
        self._suite_name = qualified_name(type(test))
        self._test_name = _require_name(str(test.custom_test_name() or ""), test)

    @property
    def suite_name(self) -> str:
        return self._suite_name

    @property
    def test_name(self) -> str:
        return self._test_name


class NodeIdentity(TestIdentity):
    """Identity derived from a pytest node id (``path::Class::name[param]``)."""

    def __init__(self, nodeid: str) -> None:
        head, sep, name = nodeid.rpartition("::")
        if not sep:
            head, name = nodeid, nodeid
        self._suite_name = head
        self._test_name = _require_name(name, nodeid)

    @property
    def suite_name(self) -> str:
        return self._suite_name

    @property
    def test_name(self) -> str:
        return self._test_name


def identity_for(test: Any) -> TestIdentity:
    """Pick the identity adapter matching the capabilities of *test*."""
    if isinstance(test, SupportsCustomName):
        return CustomNamedIdentity(test)
    return CaseIdentity(test)

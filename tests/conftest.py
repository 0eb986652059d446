"""Shared fixtures for ngreport tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from ngreport.adapters.base import NodeIdentity
from ngreport.registry import ResultRegistry

pytest_plugins = ["pytester"]

# 2023-11-14T22:13:20Z; keeps formatted timestamps well away from the epoch.
BASE_MS = 1_700_000_000_000


class ManualClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = BASE_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def at(self, offset_ms: int) -> ManualClock:
        """Set the clock to ``BASE_MS + offset_ms``."""
        self.now = BASE_MS + offset_ms
        return self


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry(clock: ManualClock) -> ResultRegistry:
    return ResultRegistry(clock=clock)


@pytest.fixture
def ident() -> Callable[[str, str], NodeIdentity]:
    """Build an identity for ``(suite, test)``."""

    def _make(suite: str, test: str) -> NodeIdentity:
        return NodeIdentity(f"{suite}::{test}")

    return _make


@pytest.fixture
def base_ms() -> int:
    return BASE_MS

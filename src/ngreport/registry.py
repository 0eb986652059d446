"""Result registry: folds test lifecycle events into keepers and aggregates.

Events may arrive in any interleaving. Timing of an occurrence is
finalized by whichever comes first of its problem report and its end, so
durations reflect execution rather than reporting delay.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ngreport.models.keeper import (
    CapturedError,
    ProblemKind,
    ResultKeeper,
    SuiteAggregate,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ngreport.adapters.base import TestIdentity

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RegistrySummary:
    """Top-level counts of a report run.

    Errors are reported as ``skipped`` and failures as ``failed``, so
    ``skipped + failed + passed == total`` holds by construction.
    """

    total: int
    failed: int
    skipped: int

    @property
    def passed(self) -> int:
        return self.total - self.skipped - self.failed


class ResultRegistry:
    """Owns every keeper and aggregate of one report run.

    Args:
        clock: Millisecond clock used to stamp events. Defaults to the
            wall clock.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or wall_clock_ms
        self._lock = threading.Lock()
        self._tests: dict[str, dict[str, ResultKeeper]] = {}
        self._aggregates: dict[str, SuiteAggregate] = {}
        self._overall = SuiteAggregate()
        self.total = 0
        self.error_count = 0
        self.failure_count = 0

    def now(self) -> int:
        return self._clock()

    # ── Lifecycle events ───────────────────────────────────────────

    def on_test_start(self, identity: TestIdentity) -> ResultKeeper:
        """Register a new occurrence of *identity* and return its keeper."""
        with self._lock:
            now = self._clock()
            self.total += 1
            keeper = ResultKeeper(test_name=identity.test_name, start_time=now)
            self._store(identity.suite_name, keeper)
            logger.debug("Started %s.%s at %d", identity.suite_name, identity.test_name, now)
            return keeper

    def on_problem(
        self,
        identity: TestIdentity,
        kind: ProblemKind,
        error: CapturedError,
    ) -> ResultKeeper:
        """Record an error or failure against the current occurrence.

        A later problem replaces an earlier one of the same occurrence and
        moves it between the failure and error counters.
        """
        with self._lock:
            now = self._clock()
            keeper = self._fetch(identity, now)
            self._finish(identity.suite_name, keeper, now)
            replaced = keeper.record_problem(kind, error)
            # Each occurrence is counted once, under the kind of its latest problem.
            if replaced is not kind:
                if replaced is not None:
                    self._count(identity.suite_name, replaced, -1)
                self._count(identity.suite_name, kind, 1)
            logger.debug(
                "Recorded %s for %s.%s: %s",
                kind.value,
                identity.suite_name,
                identity.test_name,
                error.type_name,
            )
            return keeper

    def on_test_end(self, identity: TestIdentity) -> ResultKeeper:
        """Finalize timing of the current occurrence if not done already.

        The suite bounds always stretch to the end event, even when an
        earlier problem report already fixed the occurrence's duration.
        """
        with self._lock:
            now = self._clock()
            keeper = self._fetch(identity, now)
            self._finish(identity.suite_name, keeper, now)
            self._extend(identity.suite_name, max(now, keeper.start_time))
            return keeper

    # ── Read side ──────────────────────────────────────────────────

    @property
    def overall(self) -> SuiteAggregate:
        """Umbrella aggregate spanning every occurrence of every suite."""
        return self._overall

    def aggregate(self, suite_name: str) -> SuiteAggregate | None:
        return self._aggregates.get(suite_name)

    def keeper(self, suite_name: str, test_name: str) -> ResultKeeper | None:
        return self._tests.get(suite_name, {}).get(test_name)

    def suites(self) -> list[tuple[str, list[ResultKeeper]]]:
        """Snapshot of ``(suite_name, keepers)`` in first-seen order."""
        with self._lock:
            return [(name, list(tests.values())) for name, tests in self._tests.items()]

    def summary(self) -> RegistrySummary:
        with self._lock:
            return RegistrySummary(
                total=self.total,
                failed=self.failure_count,
                skipped=self.error_count,
            )

    def __len__(self) -> int:
        return sum(len(tests) for tests in self._tests.values())

    # ── Internals (lock held) ──────────────────────────────────────

    def _store(self, suite_name: str, keeper: ResultKeeper) -> None:
        aggregate = self._aggregates.get(suite_name)
        if aggregate is None:
            aggregate = SuiteAggregate(start_time=keeper.start_time)
            self._aggregates[suite_name] = aggregate
        aggregate.include_start(keeper.start_time)
        self._overall.include_start(keeper.start_time)
        self._tests.setdefault(suite_name, {})[keeper.test_name] = keeper

    def _fetch(self, identity: TestIdentity, now: int) -> ResultKeeper:
        keeper = self._tests.get(identity.suite_name, {}).get(identity.test_name)
        if keeper is not None:
            return keeper
        logger.debug(
            "No start seen for %s.%s, synthesizing a keeper",
            identity.suite_name,
            identity.test_name,
        )
        keeper = ResultKeeper(test_name=identity.test_name, start_time=now)
        self._store(identity.suite_name, keeper)
        return keeper

    def _count(self, suite_name: str, kind: ProblemKind, step: int) -> None:
        self._aggregates[suite_name].count(kind, step)
        if kind is ProblemKind.ERROR:
            self.error_count += step
        else:
            self.failure_count += step

    def _finish(self, suite_name: str, keeper: ResultKeeper, now: int) -> None:
        if keeper.finish(now):
            self._extend(suite_name, keeper.finished_at)

    def _extend(self, suite_name: str, end_time: int) -> None:
        self._aggregates[suite_name].include_end(end_time)
        self._overall.include_end(end_time)

"""Data models for ngreport."""

from ngreport.models.keeper import (
    NULL_MESSAGE,
    CapturedError,
    KeeperStatus,
    ProblemKind,
    ResultKeeper,
    SuiteAggregate,
)

__all__ = [
    "NULL_MESSAGE",
    "CapturedError",
    "KeeperStatus",
    "ProblemKind",
    "ResultKeeper",
    "SuiteAggregate",
]

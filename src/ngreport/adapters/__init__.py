"""Host test-framework adapters.

The pytest plugin lives in ``ngreport.adapters.pytest_plugin`` and is
loaded by pytest through its ``pytest11`` entry point.
"""

from ngreport.adapters.base import (
    CaseIdentity,
    CustomNamedIdentity,
    IdentityError,
    NodeIdentity,
    SupportsCustomName,
    TestIdentity,
    identity_for,
)
from ngreport.adapters.unittest_adapter import TestngTestResult, TestngTestRunner

__all__ = [
    "CaseIdentity",
    "CustomNamedIdentity",
    "IdentityError",
    "NodeIdentity",
    "SupportsCustomName",
    "TestIdentity",
    "TestngTestResult",
    "TestngTestRunner",
    "identity_for",
]

"""ngreport: TestNG-compatible XML reports for unittest and pytest runs."""

from ngreport.adapters.base import TestIdentity, identity_for
from ngreport.listener import TestngReportListener
from ngreport.reporters.destination import FileDestination, ReportDestination

__version__ = "0.1.0"

__all__ = [
    "FileDestination",
    "ReportDestination",
    "TestIdentity",
    "TestngReportListener",
    "__version__",
    "identity_for",
]

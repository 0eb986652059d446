"""Report writers, destinations and readers."""

from ngreport.reporters.destination import FileDestination, ReportDestination
from ngreport.reporters.terminal import reporter
from ngreport.reporters.testng_xml import TestNGXMLReporter
from ngreport.reporters.trace_filter import TraceFilter

__all__ = [
    "FileDestination",
    "ReportDestination",
    "TestNGXMLReporter",
    "TraceFilter",
    "reporter",
]

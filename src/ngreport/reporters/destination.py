"""Write destinations for report bytes."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

SUITE_PLACEHOLDER = "$(suite)"
_SINGLE_FILE_SUITE = "test"


class ReportDestination(ABC):
    """A named, sequentially writable byte sink."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable location, used in log messages."""

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open the sink for writing. The caller closes the returned stream."""


class FileDestination(ReportDestination):
    """Writes the report to a file, creating parent directories as needed."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return str(self.path)

    def open(self) -> BinaryIO:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening report file %s", self.path)
        return self.path.open("wb")


def resolve_report_path(report_dir: str | Path, report_file: str) -> Path:
    """Join *report_dir* and *report_file*, expanding the suite placeholder.

    All suites go to a single document, so ``$(suite)`` always expands to
    the fixed name ``test``.
    """
    file_name = report_file.replace(SUITE_PLACEHOLDER, _SINGLE_FILE_SUITE)
    return Path(report_dir) / file_name

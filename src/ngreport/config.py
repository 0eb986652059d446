"""Configuration parsing from ``.ngreport.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ngreport.reporters.testng_xml import DEFAULT_SUITE_NAME

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".ngreport.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass
class ReportConfig:
    """Where and how the TestNG report is written."""

    output_dir: str = "reports"
    """Directory for the report, relative to the project root."""

    file_name: str = "testng-results.xml"
    """Report file name. ``$(suite)`` expands to ``test``."""

    suite_name: str = DEFAULT_SUITE_NAME
    """Name of the umbrella suite/test element."""

    filter_traces: bool = True
    """Strip test-framework frames from stack traces."""

    trace_filters: list[str] = field(default_factory=list)
    """Extra noise substrings to strip, on top of the built-in ones."""


@dataclass
class DiscoveryConfig:
    """unittest discovery settings used by ``ngreport run``."""

    start_dir: str = "."
    """Directory to start discovery from, relative to the project root."""

    pattern: str = "test*.py"
    """Glob pattern of test module file names."""

    top_level_dir: str = ""
    """Top-level directory of the project (empty = same as ``start_dir``)."""


@dataclass
class NgReportConfig:
    """Complete ngreport configuration from ``.ngreport.yml``."""

    root: str
    """Project root directory."""

    report: ReportConfig = field(default_factory=ReportConfig)
    """Report output configuration."""

    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    """Test discovery configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML, after environment variable expansion."""

    @property
    def report_path(self) -> Path:
        """Absolute path the report is written to."""
        from ngreport.reporters.destination import resolve_report_path

        return resolve_report_path(Path(self.root) / self.report.output_dir, self.report.file_name)


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        logger.warning("Ignoring non-mapping '%s' section in %s", name, CONFIG_FILE_NAME)
        return {}
    return section


def _parse_report_config(raw: dict[str, Any]) -> ReportConfig:
    """Parse the ``report`` section from raw YAML."""
    report_raw = _section(raw, "report")

    filters_raw = report_raw.get("trace_filters", [])
    trace_filters = list(filters_raw) if isinstance(filters_raw, list) else []

    return ReportConfig(
        output_dir=str(report_raw.get("output_dir", "reports")),
        file_name=str(report_raw.get("file_name", "testng-results.xml")),
        suite_name=str(report_raw.get("suite_name", DEFAULT_SUITE_NAME)),
        filter_traces=_as_bool(report_raw.get("filter_traces"), default=True),
        trace_filters=trace_filters,
    )


def _parse_discovery_config(raw: dict[str, Any]) -> DiscoveryConfig:
    """Parse the ``discovery`` section from raw YAML."""
    discovery_raw = _section(raw, "discovery")

    return DiscoveryConfig(
        start_dir=str(discovery_raw.get("start_dir", ".")),
        pattern=str(discovery_raw.get("pattern", "test*.py")),
        top_level_dir=str(discovery_raw.get("top_level_dir", "") or ""),
    )


def load_config(root: str | Path) -> NgReportConfig:
    """Load and parse ``.ngreport.yml`` under *root*.

    Falls back to defaults when the file is missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: top level is not a mapping", config_file)

    return NgReportConfig(
        root=str(root_path),
        report=_parse_report_config(raw),
        discovery=_parse_discovery_config(raw),
        raw=raw,
    )


def _validate_report_config(report: ReportConfig) -> list[str]:
    """Validate report output settings."""
    errors: list[str] = []

    if not report.file_name.strip():
        errors.append("report.file_name must not be empty")
    elif not report.file_name.endswith(".xml"):
        errors.append(f"report.file_name must end with .xml (got: {report.file_name})")

    if not report.suite_name.strip():
        errors.append("report.suite_name must not be empty")

    for idx, item in enumerate(report.trace_filters):
        if not isinstance(item, str) or not item:
            errors.append(f"report.trace_filters[{idx}] must be a non-empty string (got: {item!r})")

    return errors


def _validate_discovery_config(discovery: DiscoveryConfig) -> list[str]:
    """Validate discovery settings."""
    errors: list[str] = []

    if not discovery.pattern.strip():
        errors.append("discovery.pattern must not be empty")

    return errors


def validate_config(config: NgReportConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.root:
        errors.append("root is required")

    errors.extend(_validate_report_config(config.report))
    errors.extend(_validate_discovery_config(config.discovery))

    return errors

"""ngreport CLI: top-level command group."""

from __future__ import annotations

import json
import logging
import sys
import unittest
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console

from ngreport import __version__
from ngreport.adapters.unittest_adapter import TestngTestRunner
from ngreport.config import CONFIG_FILE_NAME, NgReportConfig, load_config, validate_config
from ngreport.listener import TestngReportListener
from ngreport.reporters.terminal import reporter
from ngreport.reporters.testng_summary import ReportParseError, load_report

logger = logging.getLogger(__name__)
console = Console()


def _config_to_dict(config: NgReportConfig) -> dict[str, Any]:
    """Convert NgReportConfig to dictionary for display."""
    result = asdict(config)
    # The raw section duplicates the parsed fields
    result.pop("raw", None)
    result["report_path"] = str(config.report_path)
    return result


def _load_config_or_abort(path: str) -> NgReportConfig:
    try:
        return load_config(path)
    except (OSError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _apply_overrides(
    config: NgReportConfig,
    *,
    start_dir: str | None,
    pattern: str | None,
    output: str | None,
    suite_name: str | None,
    filter_traces: bool | None,
) -> None:
    if start_dir is not None:
        config.discovery.start_dir = start_dir
    if pattern is not None:
        config.discovery.pattern = pattern
    if output is not None:
        output_path = Path(output)
        config.report.output_dir = str(output_path.parent)
        config.report.file_name = output_path.name
    if suite_name is not None:
        config.report.suite_name = suite_name
    if filter_traces is not None:
        config.report.filter_traces = filter_traces


def _discover(config: NgReportConfig) -> unittest.TestSuite:
    root = Path(config.root)
    start_dir = root / config.discovery.start_dir
    top_level_dir = config.discovery.top_level_dir
    return unittest.defaultTestLoader.discover(
        str(start_dir),
        pattern=config.discovery.pattern,
        top_level_dir=str(root / top_level_dir) if top_level_dir else None,
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="ngreport")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """ngreport: TestNG-compatible XML reports for Python test runs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@cli.command("run")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--start-dir", default=None, help="Discovery start directory (relative to root).")
@click.option("--pattern", default=None, help="Test module file pattern, e.g. 'test*.py'.")
@click.option(
    "-o",
    "--output",
    default=None,
    help="Report file path (relative to root), overriding the configured one.",
)
@click.option("--suite-name", default=None, help="Name of the umbrella suite.")
@click.option(
    "--filter-traces/--no-filter-traces",
    default=None,
    help="Strip test-framework frames from stack traces.",
)
@click.option(
    "--verbosity",
    default=1,
    type=click.IntRange(0, 2),
    show_default=True,
    help="unittest runner verbosity.",
)
def run(
    path: str,
    start_dir: str | None,
    pattern: str | None,
    output: str | None,
    suite_name: str | None,
    filter_traces: bool | None,
    verbosity: int,
) -> None:
    """Discover and run unittest tests, writing a TestNG XML report.

    Exits with status 1 when any test failed or errored.

    Example:
      ngreport run
      ngreport run --start-dir tests -o reports/testng-results.xml
    """
    config = _load_config_or_abort(path)
    _apply_overrides(
        config,
        start_dir=start_dir,
        pattern=pattern,
        output=output,
        suite_name=suite_name,
        filter_traces=filter_traces,
    )

    errors = validate_config(config)
    if errors:
        for error in errors:
            reporter.print_error(error)
        raise click.Abort

    try:
        suite = _discover(config)
    except ImportError as e:
        reporter.print_error(f"Test discovery failed: {e}")
        raise click.Abort from e

    listener = TestngReportListener.from_config(config.report, config.root)
    runner = TestngTestRunner(listener=listener, stream=sys.stderr, verbosity=verbosity)
    runner.run(suite)

    summary = listener.summary()
    reporter.print_test_summary_bar(
        summary.passed,
        summary.failed,
        summary.skipped,
        listener.registry.overall.duration_ms,
    )

    report_path = config.report_path
    if listener.written:
        reporter.print_success(f"TestNG report written to {report_path}")
    else:
        reporter.print_error(f"TestNG report was not written to {report_path}")
        raise SystemExit(2)

    if summary.failed or summary.skipped:
        raise SystemExit(1)


@cli.command("summary")
@click.argument("report_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of a table.",
)
def summary_command(report_file: Path, *, as_json: bool) -> None:
    """Summarize an existing TestNG XML report.

    Example:
      ngreport summary reports/testng-results.xml
    """
    try:
        summary = load_report(report_file)
    except ReportParseError as e:
        reporter.print_error(f"Failed to read report: {e}")
        raise click.Abort from e

    if as_json:
        payload = asdict(summary)
        for cls in payload["classes"]:
            for method in cls["methods"]:
                method["status"] = method["status"].value
        click.echo(json.dumps(payload, indent=2))
        return

    reporter.print_class_table(summary)
    reporter.print_test_summary_bar(
        summary.passed,
        summary.failed,
        summary.skipped,
        summary.duration_s * 1000,
    )
    reporter.print_problems(summary)


@cli.group("config")
def config_group() -> None:
    """Inspect `.ngreport.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration.

    Example:
      ngreport config show
      ngreport config show --json-output
    """
    config = _load_config_or_abort(path)
    config_dict = _config_to_dict(config)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.ngreport.yml`.

    Example:
      ngreport config validate
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    console.print(
        f"[dim]Fix these errors in {CONFIG_FILE_NAME} and run "
        "'ngreport config validate' again.[/dim]"
    )
    raise click.Abort


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()

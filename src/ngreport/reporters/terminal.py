"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from ngreport.models.keeper import KeeperStatus

if TYPE_CHECKING:
    from ngreport.reporters.testng_summary import ReportSummary

console = Console()


_PERFECT_RATE = 100.0
_GOOD_RATE = 80.0
_SECONDS_PER_MINUTE = 60.0

_MAX_MESSAGE_LENGTH = 60
_MAX_PROBLEMS_DISPLAY = 20


def _pass_rate_color(rate: float) -> str:
    """Return a Rich color name for a given pass-rate percentage."""
    if rate >= _PERFECT_RATE:
        return "green"
    if rate >= _GOOD_RATE:
        return "yellow"
    return "red"


def _format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds >= _SECONDS_PER_MINUTE:
        return f"{seconds / _SECONDS_PER_MINUTE:.1f}m"
    return f"{seconds:.1f}s"


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class CLIReporter:
    """Rich terminal output for report runs and report summaries."""

    def __init__(self) -> None:
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_test_summary_bar(
        self,
        passed: int,
        failed: int,
        skipped: int,
        duration_ms: float,
    ) -> None:
        """Print a visual bar showing test result distribution with stats.

        ``skipped`` counts TestNG SKIP entries, which is how errors are
        reported.
        """
        total = passed + failed + skipped
        if total == 0:
            self.console.print("  [dim]No tests executed[/dim]")
            return

        pass_rate = passed / total * 100
        bar = self._build_result_bar(passed, failed, skipped)
        dur_str = _format_duration(duration_ms / 1000)
        rate_color = _pass_rate_color(pass_rate)

        self.console.print()
        self.console.print(
            f"  [bold]{total}[/bold] tests  {bar}  "
            f"[bold {rate_color}]{pass_rate:.0f}%[/bold {rate_color}] pass rate  "
            f"[dim]⏱ {dur_str}[/dim]"
        )

        parts: list[str] = []
        if passed:
            parts.append(f"[green]✓ {passed} passed[/green]")
        if failed:
            parts.append(f"[red]✗ {failed} failed[/red]")
        if skipped:
            parts.append(f"[yellow]⊘ {skipped} skipped (errors)[/yellow]")

        self.console.print(f"  {'  '.join(parts)}")
        self.console.print()

    def _build_result_bar(
        self,
        passed: int,
        failed: int,
        skipped: int,
        width: int = 40,
    ) -> str:
        """Build a colored bar string proportional to result counts."""
        total = passed + failed + skipped
        if total == 0:
            return f"[dim]{'░' * width}[/dim]"

        chars: list[tuple[str, str]] = []
        for count, color in ((passed, "green"), (failed, "red"), (skipped, "yellow")):
            n = round(count / total * width)
            chars.extend([("█", color)] * n)

        chars = chars[:width]
        while len(chars) < width:
            chars.append(("░", "dim"))

        # Group consecutive same-color runs
        result = ""
        i = 0
        while i < len(chars):
            char, color = chars[i]
            j = i + 1
            while j < len(chars) and chars[j][1] == color:
                j += 1
            result += f"[{color}]{char * (j - i)}[/{color}]"
            i = j

        return result

    def print_class_table(self, summary: ReportSummary) -> None:
        """Print a per-class results table."""
        table = Table(title=summary.suite_name or "TestNG Results", title_style="bold cyan")
        table.add_column("Class", style="bold")
        table.add_column("Passed", justify="right", style="green")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right", style="yellow")
        table.add_column("Duration", justify="right", style="dim")

        for cls in summary.classes:
            table.add_row(
                cls.name,
                str(cls.count(KeeperStatus.PASS)),
                str(cls.count(KeeperStatus.FAIL)),
                str(cls.count(KeeperStatus.SKIP)),
                _format_duration(cls.duration_s),
            )

        self.console.print(table)

    def print_problems(self, summary: ReportSummary) -> None:
        """List failed and errored methods with their exception messages."""
        problems = summary.problems
        if not problems:
            return

        table = Table(title="Problems", title_style="bold red")
        table.add_column("Status")
        table.add_column("Test", style="bold")
        table.add_column("Exception", style="dim")

        for class_name, method in problems[:_MAX_PROBLEMS_DISPLAY]:
            color = "red" if method.status is KeeperStatus.FAIL else "yellow"
            table.add_row(
                f"[{color}]{method.status.value}[/{color}]",
                f"{class_name}.{method.name}",
                _truncate(method.message or method.exception_class or "", _MAX_MESSAGE_LENGTH),
            )

        self.console.print(table)
        if len(problems) > _MAX_PROBLEMS_DISPLAY:
            self.console.print(
                f"  [dim]... and {len(problems) - _MAX_PROBLEMS_DISPLAY} more[/dim]"
            )


reporter = CLIReporter()

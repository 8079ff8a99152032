"""
Per-fixture report output.

Every line is written and flushed before the next fixture starts, so a long
run shows its progress as it goes.
"""

import sys
from abc import ABC, abstractmethod
from typing import TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from rulebench.errors import ReportEmissionError
from rulebench.models import BenchmarkResult, ReportLine, RunStatus


def format_duration(seconds: float) -> str:
    """
    Human-readable duration.

    >>> format_duration(0.0123)
    '12.3ms'
    >>> format_duration(1.5)
    '1.500s'
    >>> format_duration(123.4567)
    '2m03.457s'
    """
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.3f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m{rest:06.3f}s"


def display_label(label: str) -> str:
    """
    Printable form of a fixture label.

    File names that are not valid UTF-8 carry surrogate escapes; those bytes
    are shown as U+FFFD so the line can still be written.

    >>> display_label("inputs/b\\udcff.json") == "inputs/b\\ufffd.json"
    True
    """
    return label.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def format_status(line: ReportLine) -> str:
    """Status column of a report line."""
    if line.status == RunStatus.OK:
        return "ok"
    if line.status == RunStatus.ENGINE_FAILED:
        if line.exit_status is not None and line.exit_status < 0:
            return f"FAILED (signal {-line.exit_status})"
        return f"FAILED (exit {line.exit_status})"
    return f"READ ERROR: {line.error_message}"


def render_line(line: ReportLine) -> str:
    """Render a report line as plain text."""
    elapsed = format_duration(line.elapsed_seconds) if line.elapsed_seconds is not None else "--"
    return f"{display_label(line.label)}  {elapsed}  {format_status(line)}"


def render_summary(result: BenchmarkResult) -> str:
    summary = result.get_summary()
    return (
        f"{summary['fixtures']} fixture(s): {summary['ok']} ok, "
        f"{summary['engine_failed']} engine failure(s), "
        f"{summary['read_errors']} read error(s); "
        f"engine time {format_duration(summary['total_elapsed_seconds'])}"
    )


class Reporter(ABC):
    """Receives fixture events from the driver in enumeration order."""

    @abstractmethod
    def announce(self, label: str) -> None:
        """Called before a fixture runs."""

    @abstractmethod
    def report(self, line: ReportLine) -> None:
        """Called once per fixture with its final report line."""

    def finish(self, result: BenchmarkResult) -> None:
        """Called once after every fixture was reported."""


class TextReporter(Reporter):
    """Plain-text reporter writing to a stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None, summary: bool = True):
        self.stream = stream if stream is not None else sys.stdout
        self.summary = summary

    def _emit(self, text: str) -> None:
        try:
            self.stream.write(text + "\n")
            self.stream.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise ReportEmissionError(f"Cannot write report output: {e}") from e

    def announce(self, label: str) -> None:
        self._emit(f"Running {display_label(label)}...")

    def report(self, line: ReportLine) -> None:
        self._emit(render_line(line))

    def finish(self, result: BenchmarkResult) -> None:
        if self.summary:
            self._emit("")
            self._emit(render_summary(result))


class RichReporter(Reporter):
    """Colored reporter on a rich Console, with a closing summary table."""

    STATUS_STYLES = {
        RunStatus.OK: "green",
        RunStatus.ENGINE_FAILED: "red",
        RunStatus.READ_ERROR: "yellow",
    }

    def __init__(self, console: Console | None = None):
        self.console = console if console is not None else Console()

    def _print(self, *renderables, **kwargs) -> None:
        try:
            self.console.print(*renderables, **kwargs)
        except (OSError, ValueError) as e:
            raise ReportEmissionError(f"Cannot write report output: {e}") from e

    def announce(self, label: str) -> None:
        # soft_wrap keeps each fixture on one line whatever the console width
        self._print(Text(f"▶ Running {display_label(label)}...", style="dim"), soft_wrap=True)

    def report(self, line: ReportLine) -> None:
        elapsed = (
            format_duration(line.elapsed_seconds) if line.elapsed_seconds is not None else "--"
        )
        style = self.STATUS_STYLES[line.status]
        icon = "✓" if line.status == RunStatus.OK else "✗"
        self._print(Text.assemble(
            (f"{icon} ", style),
            (display_label(line.label), "cyan"),
            "  ",
            (elapsed, "bold"),
            "  ",
            (format_status(line), style),
        ), soft_wrap=True)

    def finish(self, result: BenchmarkResult) -> None:
        summary = result.get_summary()

        table = Table(
            title="Benchmark Results",
            show_header=True,
            header_style="bold",
            border_style="blue",
        )
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Fixtures", str(summary["fixtures"]))
        table.add_row("OK", f"[green]{summary['ok']}[/green]")
        table.add_row(
            "Engine failures",
            f"[red]{summary['engine_failed']}[/red]" if summary["engine_failed"] else "0",
        )
        table.add_row(
            "Read errors",
            f"[yellow]{summary['read_errors']}[/yellow]" if summary["read_errors"] else "0",
        )
        table.add_row("Engine time", format_duration(summary["total_elapsed_seconds"]))

        self._print()
        self._print(table)

"""Terminal reporter with rich output formatting."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from electabul.coverage.summary import CoverageSummary, Totals

console = Console()

_HIGH_COVERAGE = 80.0
_MEDIUM_COVERAGE = 50.0


class CLIReporter:
    """Rich terminal output for CLI commands and text coverage reports."""

    def __init__(self, target: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = target or console

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def _get_coverage_color(self, percentage: float) -> str:
        """Get a color based on coverage percentage."""
        if percentage >= _HIGH_COVERAGE:
            return "green"
        if percentage >= _MEDIUM_COVERAGE:
            return "yellow"
        return "red"

    def _format_totals(self, totals: Totals, *, bold: bool = False) -> str:
        color = self._get_coverage_color(totals.pct)
        style = f"bold {color}" if bold else color
        return f"[{style}]{totals.pct:.2f}%[/{style}] ({totals.covered}/{totals.total})"

    def _strip_workdir(self, file_path: str) -> str:
        """Strip the current working directory from file path for cleaner display."""
        cwd = os.getcwd() + os.sep
        return file_path.removeprefix(cwd)

    def print_coverage_summary(self, summary: CoverageSummary) -> None:
        """Print overall totals (istanbul ``text-summary``)."""
        self.console.print()
        self.console.print("[bold cyan]Coverage summary[/bold cyan]")
        self.console.print(f"Statements : {self._format_totals(summary.statements)}")
        self.console.print(f"Branches   : {self._format_totals(summary.branches)}")
        self.console.print(f"Functions  : {self._format_totals(summary.functions)}")
        self.console.print(f"Lines      : {self._format_totals(summary.lines)}")

    def print_coverage_table(self, summary: CoverageSummary) -> None:
        """Print one row per file (istanbul ``text``)."""
        table = Table(title="Coverage", title_style="bold cyan")
        table.add_column("File", style="bold")
        table.add_column("Statements", justify="right")
        table.add_column("Branches", justify="right")
        table.add_column("Functions", justify="right")
        table.add_column("Lines", justify="right")

        for path, file_cov in sorted(summary.files.items()):
            table.add_row(
                self._strip_workdir(path),
                self._format_totals(file_cov.statements),
                self._format_totals(file_cov.branch_totals),
                self._format_totals(file_cov.function_totals),
                self._format_totals(file_cov.line_totals),
            )

        table.add_section()
        table.add_row(
            "[bold]All files[/bold]",
            self._format_totals(summary.statements, bold=True),
            self._format_totals(summary.branches, bold=True),
            self._format_totals(summary.functions, bold=True),
            self._format_totals(summary.lines, bold=True),
        )

        self.console.print(table)


# Singleton instance for easy import
reporter = CLIReporter()

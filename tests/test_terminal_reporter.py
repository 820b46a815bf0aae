"""Tests for the terminal (Rich) reporter."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest
from rich.table import Table

from electabul.coverage.model import CounterState
from electabul.coverage.summary import CoverageSummary, Totals, summarize
from electabul.reporters.terminal import CLIReporter, reporter

# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def mock_console() -> MagicMock:
    """Return a MagicMock that replaces the console."""
    return MagicMock()


@pytest.fixture
def cli_reporter(mock_console: MagicMock) -> CLIReporter:
    return CLIReporter(target=mock_console)


@pytest.fixture
def summary() -> CoverageSummary:
    loc = {"start": {"line": 1, "column": 0}, "end": {"line": 1, "column": 4}}
    return summarize(
        {
            "/app/a.js": CounterState(path="/app/a.js", statement_map={"0": loc}, s={"0": 1}),
            "/app/b.js": CounterState(path="/app/b.js", statement_map={"0": loc}, s={"0": 0}),
        }
    )


# ── Messages ────────────────────────────────────────────────────


class TestMessages:
    def test_print_success(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_success("done")
        mock_console.print.assert_called_once_with("[green]✓[/green] done")

    def test_print_error(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_error("boom")
        mock_console.print.assert_called_once_with("[red]✗[/red] boom")

    def test_print_warning(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_warning("careful")
        mock_console.print.assert_called_once_with("[yellow]⚠[/yellow] careful")

    def test_singleton(self) -> None:
        assert isinstance(reporter, CLIReporter)


# ── Coverage output ─────────────────────────────────────────────


class TestCoverageColor:
    @pytest.mark.parametrize(
        ("pct", "color"),
        [(100.0, "green"), (80.0, "green"), (79.9, "yellow"), (50.0, "yellow"), (10.0, "red")],
    )
    def test_thresholds(self, cli_reporter: CLIReporter, pct: float, color: str) -> None:
        assert cli_reporter._get_coverage_color(pct) == color

    def test_format_totals(self, cli_reporter: CLIReporter) -> None:
        assert cli_reporter._format_totals(Totals(4, 1)) == "[red]25.00%[/red] (1/4)"
        assert cli_reporter._format_totals(Totals(1, 1), bold=True) == (
            "[bold green]100.00%[/bold green] (1/1)"
        )


class TestCoverageReports:
    def test_summary_prints_four_metrics(
        self, cli_reporter: CLIReporter, mock_console: MagicMock, summary: CoverageSummary
    ) -> None:
        cli_reporter.print_coverage_summary(summary)
        printed = [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]
        assert any(line.startswith("Statements : [yellow]50.00%") for line in printed)
        assert any(line.startswith("Lines      :") for line in printed)

    def test_table_has_row_per_file_and_total(
        self, cli_reporter: CLIReporter, mock_console: MagicMock, summary: CoverageSummary
    ) -> None:
        cli_reporter.print_coverage_table(summary)
        table = mock_console.print.call_args.args[0]
        assert isinstance(table, Table)
        assert table.row_count == 3

    def test_strip_workdir(self, cli_reporter: CLIReporter) -> None:
        path = os.path.join(os.getcwd(), "lib", "a.js")
        assert cli_reporter._strip_workdir(path) == os.path.join("lib", "a.js")

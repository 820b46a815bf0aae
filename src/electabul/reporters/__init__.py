"""Coverage report writers, selected by istanbul format name."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from electabul.coverage.summary import summarize
from electabul.reporters.json_reporter import JSONReporter, JSONSummaryReporter
from electabul.reporters.lcov import LcovReporter
from electabul.reporters.terminal import CLIReporter, reporter

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from electabul.coverage.model import CoverageMap

logger = logging.getLogger(__name__)

_FILE_REPORTERS = {
    "json": JSONReporter,
    "json-summary": JSONSummaryReporter,
    "lcov": LcovReporter,
    "lcovonly": LcovReporter,
}

_TERMINAL_FORMATS = frozenset({"text", "text-summary"})


class ReportWriter:
    """Write a merged coverage map in each requested format.

    File formats land in *output_dir*; ``text`` and ``text-summary`` are
    printed to the terminal.
    """

    def __init__(self, output_dir: Path, terminal: CLIReporter | None = None) -> None:
        self._output_dir = output_dir
        self._terminal = terminal or reporter

    def write(self, coverage_map: CoverageMap, formats: Iterable[str]) -> list[Path]:
        """Write every requested format synchronously; return the files written."""
        written: list[Path] = []
        seen: set[type] = set()

        for fmt in formats:
            if fmt in _TERMINAL_FORMATS:
                summary = summarize(coverage_map)
                if fmt == "text":
                    self._terminal.print_coverage_table(summary)
                else:
                    self._terminal.print_coverage_summary(summary)
                continue

            reporter_cls = _FILE_REPORTERS.get(fmt)
            if reporter_cls is None:
                logger.warning("Unsupported coverage report format %r, skipping", fmt)
                continue
            if reporter_cls in seen:
                continue
            seen.add(reporter_cls)
            written.append(reporter_cls().generate(coverage_map, self._output_dir))

        return written


__all__ = [
    "CLIReporter",
    "JSONReporter",
    "JSONSummaryReporter",
    "LcovReporter",
    "ReportWriter",
    "reporter",
]

"""JSON reporters: istanbul ``coverage-final.json`` and ``coverage-summary.json``."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from electabul.coverage.model import coverage_map_to_dict
from electabul.coverage.summary import summarize

if TYPE_CHECKING:
    from pathlib import Path

    from electabul.coverage.model import CoverageMap

logger = logging.getLogger(__name__)

COVERAGE_FINAL = "coverage-final.json"
COVERAGE_SUMMARY = "coverage-summary.json"


class JSONReporter:
    """Write the merged coverage map in istanbul's JSON layout."""

    def generate(self, coverage_map: CoverageMap, output_dir: Path) -> Path:
        """Write ``coverage-final.json`` and return its path."""
        output_path = output_dir / COVERAGE_FINAL
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(coverage_map_to_dict(coverage_map), ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("JSON coverage written to %s", output_path)
        return output_path


class JSONSummaryReporter:
    """Write per-file and total percentages (istanbul ``json-summary``)."""

    def generate(self, coverage_map: CoverageMap, output_dir: Path) -> Path:
        output_path = output_dir / COVERAGE_SUMMARY
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(summarize(coverage_map).to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("JSON coverage summary written to %s", output_path)
        return output_path

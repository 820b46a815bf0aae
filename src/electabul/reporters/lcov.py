"""LCOV tracefile reporter (``lcov.info``)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from electabul.coverage.summary import summarize_file

if TYPE_CHECKING:
    from pathlib import Path

    from electabul.coverage.model import CoverageMap

logger = logging.getLogger(__name__)

LCOV_FILENAME = "lcov.info"


def render_lcov(coverage_map: CoverageMap) -> str:
    """Render a coverage map as an LCOV tracefile."""
    out: list[str] = []
    for path in sorted(coverage_map):
        file_cov = summarize_file(coverage_map[path])
        out.append("TN:")
        out.append(f"SF:{path}")

        for fn in file_cov.functions:
            out.append(f"FN:{fn.line_number},{fn.name}")
        for fn in file_cov.functions:
            out.append(f"FNDA:{fn.execution_count},{fn.name}")
        functions = file_cov.function_totals
        out.append(f"FNF:{functions.total}")
        out.append(f"FNH:{functions.covered}")

        for line in file_cov.lines:
            out.append(f"DA:{line.line_number},{line.execution_count}")
        lines = file_cov.line_totals
        out.append(f"LF:{lines.total}")
        out.append(f"LH:{lines.covered}")

        for branch in file_cov.branches:
            for arm, count in enumerate(branch.arm_counts):
                taken = str(count) if count > 0 else "-"
                out.append(f"BRDA:{branch.line_number},{branch.branch_id},{arm},{taken}")
        branches = file_cov.branch_totals
        out.append(f"BRF:{branches.total}")
        out.append(f"BRH:{branches.covered}")
        out.append("end_of_record")
    return "\n".join(out) + ("\n" if out else "")


class LcovReporter:
    """Write ``lcov.info`` into the report directory."""

    def generate(self, coverage_map: CoverageMap, output_dir: Path) -> Path:
        output_path = output_dir / LCOV_FILENAME
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(render_lcov(coverage_map), encoding="utf-8")
        logger.info("LCOV report written to %s", output_path)
        return output_path

"""Line, function and branch summaries derived from istanbul counter states."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from electabul.coverage.model import CounterState, CoverageMap


@dataclass
class LineCoverage:
    """Coverage data for a single line of code."""

    line_number: int
    execution_count: int

    @property
    def is_covered(self) -> bool:
        """Return True if this line was executed at least once."""
        return self.execution_count > 0


@dataclass
class FunctionCoverage:
    """Coverage data for a single function."""

    name: str
    line_number: int
    execution_count: int

    @property
    def is_covered(self) -> bool:
        """Return True if this function was executed at least once."""
        return self.execution_count > 0


@dataclass
class BranchCoverage:
    """Coverage data for a single branch (if/else, switch, ternary, etc.)."""

    line_number: int
    branch_id: int
    arm_counts: list[int] = field(default_factory=list)

    @property
    def taken_count(self) -> int:
        return sum(1 for c in self.arm_counts if c > 0)

    @property
    def total_count(self) -> int:
        return len(self.arm_counts)


@dataclass
class Totals:
    """Covered/total pair with istanbul's percentage convention (empty = 100%)."""

    total: int = 0
    covered: int = 0

    @property
    def pct(self) -> float:
        if self.total == 0:
            return 100.0
        return round((self.covered / self.total) * 100.0, 2)

    def __add__(self, other: Totals) -> Totals:
        return Totals(total=self.total + other.total, covered=self.covered + other.covered)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "covered": self.covered,
            "skipped": 0,
            "pct": self.pct,
        }


@dataclass
class FileCoverage:
    """Coverage data for a single source file."""

    file_path: str
    statements: Totals = field(default_factory=Totals)
    lines: list[LineCoverage] = field(default_factory=list)
    functions: list[FunctionCoverage] = field(default_factory=list)
    branches: list[BranchCoverage] = field(default_factory=list)

    @property
    def line_totals(self) -> Totals:
        return Totals(
            total=len(self.lines), covered=sum(1 for line in self.lines if line.is_covered)
        )

    @property
    def function_totals(self) -> Totals:
        return Totals(
            total=len(self.functions), covered=sum(1 for fn in self.functions if fn.is_covered)
        )

    @property
    def branch_totals(self) -> Totals:
        return Totals(
            total=sum(branch.total_count for branch in self.branches),
            covered=sum(branch.taken_count for branch in self.branches),
        )

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "lines": self.line_totals.to_dict(),
            "statements": self.statements.to_dict(),
            "functions": self.function_totals.to_dict(),
            "branches": self.branch_totals.to_dict(),
        }


@dataclass
class CoverageSummary:
    """Per-file and overall coverage summary for a merged coverage map."""

    files: dict[str, FileCoverage] = field(default_factory=dict)

    def _total(self, attr: str) -> Totals:
        result = Totals()
        for file_cov in self.files.values():
            result = result + getattr(file_cov, attr)
        return result

    @property
    def lines(self) -> Totals:
        return self._total("line_totals")

    @property
    def statements(self) -> Totals:
        return self._total("statements")

    @property
    def functions(self) -> Totals:
        return self._total("function_totals")

    @property
    def branches(self) -> Totals:
        return self._total("branch_totals")

    def get_uncovered_files(self) -> list[str]:
        """Return paths of files where no line was executed."""
        return [
            path
            for path, file_cov in self.files.items()
            if file_cov.lines and file_cov.line_totals.covered == 0
        ]

    def to_dict(self) -> dict[str, Any]:
        """istanbul ``json-summary`` layout: a ``total`` entry plus one per file."""
        result: dict[str, Any] = {
            "total": {
                "lines": self.lines.to_dict(),
                "statements": self.statements.to_dict(),
                "functions": self.functions.to_dict(),
                "branches": self.branches.to_dict(),
            }
        }
        for path, file_cov in sorted(self.files.items()):
            result[path] = file_cov.to_summary_dict()
        return result


def summarize_file(state: CounterState) -> FileCoverage:
    """Build the unified summary for one file."""
    return FileCoverage(
        file_path=state.path,
        statements=Totals(
            total=len(state.s), covered=sum(1 for count in state.s.values() if count > 0)
        ),
        lines=_line_coverage(state),
        functions=_function_coverage(state),
        branches=_branch_coverage(state),
    )


def summarize(coverage_map: CoverageMap) -> CoverageSummary:
    """Build the unified summary for a whole coverage map."""
    return CoverageSummary(
        files={path: summarize_file(state) for path, state in coverage_map.items()}
    )


def _sort_key(key: str) -> tuple[int, str]:
    return (int(key), key) if key.isdigit() else (0, key)


def _line_coverage(state: CounterState) -> list[LineCoverage]:
    """Line hits are the highest count of any statement starting on the line."""
    lines: dict[int, int] = {}

    for stmt_id, count in state.s.items():
        line = state.statement_map.get(stmt_id, {}).get("start", {}).get("line")
        if line is not None:
            lines[line] = max(lines.get(line, 0), count)

    return [
        LineCoverage(line_number=line_num, execution_count=count)
        for line_num, count in sorted(lines.items())
    ]


def _function_coverage(state: CounterState) -> list[FunctionCoverage]:
    functions = []
    for fn_id in sorted(state.f, key=_sort_key):
        fn_info = state.fn_map.get(fn_id, {})
        loc = fn_info.get("decl") or fn_info.get("loc", {})
        functions.append(
            FunctionCoverage(
                name=fn_info.get("name") or f"(anonymous_{fn_id})",
                line_number=loc.get("start", {}).get("line", fn_info.get("line", 0)),
                execution_count=state.f[fn_id],
            )
        )
    return functions


def _branch_coverage(state: CounterState) -> list[BranchCoverage]:
    branches = []
    for branch_id in sorted(state.b, key=_sort_key):
        branch_info = state.branch_map.get(branch_id, {})
        loc = branch_info.get("loc") or {}
        line = loc.get("start", {}).get("line", branch_info.get("line", 0))
        branches.append(
            BranchCoverage(
                line_number=line,
                branch_id=int(branch_id) if branch_id.isdigit() else 0,
                arm_counts=list(state.b[branch_id]),
            )
        )
    return branches

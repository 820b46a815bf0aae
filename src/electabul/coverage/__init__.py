"""Coverage model, snapshot storage and the run-wide collector."""

from electabul.coverage.model import (
    CounterState,
    CoverageMap,
    coverage_map_from_dict,
    coverage_map_to_dict,
    merge_counter_states,
    merge_coverage_maps,
)
from electabul.coverage.store import ProcessReport, SnapshotStore
from electabul.coverage.summary import CoverageSummary, FileCoverage, summarize
from electabul.coverage.collector import CoverageCollector

__all__ = [
    "CounterState",
    "CoverageCollector",
    "CoverageMap",
    "CoverageSummary",
    "FileCoverage",
    "ProcessReport",
    "SnapshotStore",
    "coverage_map_from_dict",
    "coverage_map_to_dict",
    "merge_counter_states",
    "merge_coverage_maps",
    "summarize",
]

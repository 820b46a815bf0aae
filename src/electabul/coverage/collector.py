"""Coverage collector for a multi-process Electron run.

One collector is created per run in the coordinating (main) process. It
persists every coverage payload it receives as a durable snapshot, and at
the end of the run merges the snapshots, the coordinator's own live coverage
and zero baselines for never-loaded files into one report.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from electabul.coverage.model import (
    CounterState,
    CoverageMap,
    merge_coverage_maps,
)
from electabul.coverage.store import SnapshotStore
from electabul.instrument.tree import discover_sources
from electabul.reporters import ReportWriter

if TYPE_CHECKING:
    from pathlib import Path

    from electabul.config import CoverageOptions
    from electabul.hooks.host import WebContents
    from electabul.hooks.lifecycle import LifecycleHooks
    from electabul.instrument.instrumenter import Instrumenter

logger = logging.getLogger(__name__)


class CoverageCollector:
    """Owns the merged coverage map and the snapshot directory for one run.

    Args:
        options: Output, library and format settings.
        live_coverage: The coordinator's own istanbul coverage object (the
            ``__coverage__`` global of the instrumented main process), or
            ``None`` when the app was not instrumented. ``None`` disables
            every operation.
        instrumenter: Transform used for zero baselines; defaults to a
            :class:`NodeInstrumenter` rooted at the library path.
        store: Snapshot store; defaults to ``<output_path>/data``.
        report_writer: Writer for the final report.
    """

    def __init__(
        self,
        options: CoverageOptions,
        live_coverage: dict[str, Any] | None,
        *,
        instrumenter: Instrumenter | None = None,
        store: SnapshotStore | None = None,
        report_writer: ReportWriter | None = None,
    ) -> None:
        self.output_path: Path = options.resolved_output_path
        self.data_path: Path = options.data_path
        self.lib_path: Path = options.resolved_lib_path
        self.formats: list[str] = list(options.formats)
        self.query_timeout: float = options.query_timeout
        self._live_coverage = live_coverage
        self._enabled = live_coverage is not None
        self._instrumenter = instrumenter
        self._store = store or SnapshotStore(self.data_path)
        self._report_writer = report_writer or ReportWriter(self.output_path)
        self._aggregate: CoverageMap = {}
        self._report: CoverageMap | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def aggregate(self) -> CoverageMap:
        return self._aggregate

    def _get_instrumenter(self) -> Instrumenter:
        if self._instrumenter is None:
            from electabul.instrument.instrumenter import NodeInstrumenter

            self._instrumenter = NodeInstrumenter(cwd=self.lib_path)
        return self._instrumenter

    # ── Run lifecycle ────────────────────────────────────────────

    def setup(self, hooks: LifecycleHooks | None = None) -> None:
        """Start a fresh run: drop stale snapshots, then arm the hooks."""
        if not self._enabled:
            return

        self._store.clear()
        if hooks is not None:
            hooks.arm()

    def generate_report(self) -> CoverageMap | None:
        """Merge everything collected so far and write the report.

        Runs once per collector; later calls return the first result.
        """
        if not self._enabled:
            return None

        if self._report is not None:
            logger.warning("Coverage report already generated for %s", self.output_path)
            return self._report

        self.add_unrequired_files()
        self.add_coverage(self._live_coverage)
        self.add_browser_window_data()

        written = self._report_writer.write(self._aggregate, self.formats)
        logger.info(
            "Coverage report for %d file(s) written to %s (%d artifact(s))",
            len(self._aggregate),
            self.output_path,
            len(written),
        )
        self._report = self._aggregate
        return self._report

    # ── Aggregation ──────────────────────────────────────────────

    def add_coverage(self, data: dict[str, Any] | CoverageMap | None) -> None:
        """Merge a raw istanbul coverage object into the aggregate."""
        if data is None:
            return

        coverage_map = {
            path: state if isinstance(state, CounterState) else CounterState.from_dict(state, path)
            for path, state in data.items()
            if isinstance(state, (CounterState, dict))
        }
        self._aggregate = merge_coverage_maps(self._aggregate, coverage_map)

    def add_unrequired_files(self) -> list[str]:
        """Give every never-loaded library file a zero-count entry.

        Instrumenting a file marks hoisted function declarations as
        executed; those counts are cleared because the file was never
        loaded. Returns the paths that were added.
        """
        if self._live_coverage is None:
            return []

        known = self._live_coverage
        missing = [path for path in discover_sources(self.lib_path) if str(path) not in known]
        if not missing:
            return []

        batch = [(path.read_text(encoding="utf-8"), str(path)) for path in missing]
        results = self._get_instrumenter().instrument_many(batch)

        added: list[str] = []
        for path, result in zip(missing, results, strict=True):
            self._live_coverage[str(path)] = result.counter_state.zeroed().to_dict()
            added.append(str(path))

        logger.debug("Added zero coverage for %d unloaded file(s)", len(added))
        return added

    def add_browser_window_data(self) -> int:
        """Merge every durable snapshot; returns how many were merged."""
        merged = 0
        for report in self._store.iter_reports():
            self._aggregate = merge_coverage_maps(self._aggregate, report.coverage)
            merged += 1
        logger.debug("Merged %d coverage snapshot(s) from %s", merged, self.data_path)
        return merged

    # ── Snapshot persistence ─────────────────────────────────────

    def save_coverage_data(
        self,
        contents: WebContents,
        coverage: dict[str, Any] | None,
        pid: int | str | None = None,
    ) -> Path | None:
        """Persist the coverage of one renderer process.

        The process id defaults to the web contents id. Write errors
        propagate to the caller.
        """
        if not self._enabled or not coverage:
            return None

        process_id = str(pid) if pid is not None else str(contents.id)
        return self._store.save(process_id, contents.get_type(), coverage)

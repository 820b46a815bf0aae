"""Durable per-process coverage snapshots.

Every coverage payload extracted from (or pushed by) a renderer process is
written straight away as its own JSON file in the snapshot directory, so a
crash of the coordinating process never loses what was already reported.
File names follow ``<processId>-<processKind>-<timestampMillis>.json``;
writers never touch an existing file.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from electabul.coverage.model import CoverageMap, coverage_map_from_dict
from electabul.coverage.schema import split_valid_entries

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

_SNAPSHOT_NAME_RE = re.compile(r"^(?P<pid>.+)-(?P<kind>[^-]+)-(?P<timestamp>\d+)\.json$")


@dataclass(frozen=True)
class ProcessReport:
    """A coverage snapshot from one process at one point in time."""

    process_id: str
    process_kind: str
    timestamp_ms: int
    coverage: CoverageMap = field(default_factory=dict)
    path: Path | None = None

    @property
    def filename(self) -> str:
        return snapshot_filename(self.process_id, self.process_kind, self.timestamp_ms)


def snapshot_filename(process_id: str, process_kind: str, timestamp_ms: int) -> str:
    """Build the snapshot file name for a process report."""
    return f"{process_id}-{process_kind}-{timestamp_ms}.json"


def parse_snapshot_filename(name: str) -> tuple[str, str, int] | None:
    """Split a snapshot file name into ``(process_id, process_kind, timestamp_ms)``."""
    match = _SNAPSHOT_NAME_RE.match(name)
    if match is None:
        return None
    return match.group("pid"), match.group("kind"), int(match.group("timestamp"))


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnapshotStore:
    """Append-only directory of :class:`ProcessReport` JSON files."""

    def __init__(self, data_path: Path) -> None:
        self._data_path = data_path

    @property
    def data_path(self) -> Path:
        return self._data_path

    def clear(self) -> None:
        """Remove every snapshot left by a previous run."""
        if self._data_path.exists():
            logger.debug("Clearing coverage snapshots in %s", self._data_path)
            shutil.rmtree(self._data_path)

    def save(self, process_id: str, process_kind: str, coverage: dict[str, Any]) -> Path:
        """Persist one raw coverage payload and return the file written.

        Two saves for the same process in the same millisecond get
        consecutive timestamps; an existing file is never overwritten.
        """
        self._data_path.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(coverage)
        timestamp = _now_ms()

        while True:
            target = self._data_path / snapshot_filename(process_id, process_kind, timestamp)
            try:
                with target.open("x", encoding="utf-8") as f:
                    f.write(payload)
            except FileExistsError:
                timestamp += 1
                continue
            break

        logger.debug("Saved coverage for process %s (%s) to %s", process_id, process_kind, target)
        return target

    def snapshot_paths(self) -> list[Path]:
        if not self._data_path.is_dir():
            return []
        return sorted(p for p in self._data_path.glob("*.json") if p.is_file())

    def read(self, path: Path) -> ProcessReport | None:
        """Load one snapshot; unreadable files yield ``None``, invalid entries are dropped."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable coverage snapshot %s: %s", path, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Skipping coverage snapshot %s: not a coverage map", path)
            return None

        data, rejected = split_valid_entries(data)
        for key, error in rejected.items():
            logger.warning("Skipping invalid coverage for %s in %s: %s", key, path, error)

        parsed = parse_snapshot_filename(path.name)
        process_id, process_kind, timestamp = parsed if parsed else (path.stem, "unknown", 0)
        return ProcessReport(
            process_id=process_id,
            process_kind=process_kind,
            timestamp_ms=timestamp,
            coverage=coverage_map_from_dict(data),
            path=path,
        )

    def iter_reports(self) -> Iterator[ProcessReport]:
        """Yield every readable snapshot in file-name order."""
        for path in self.snapshot_paths():
            report = self.read(path)
            if report is not None:
                yield report

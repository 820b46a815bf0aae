"""Istanbul counter-state model and the additive merge law.

A coverage map is a plain ``dict[str, CounterState]`` keyed by absolute file
path. ``CounterState`` mirrors istanbul's per-file coverage object::

    {
      "path": "/app/lib/a.js",
      "statementMap": {"0": {"start": {...}, "end": {...}}, ...},
      "fnMap": {"0": {"name": "f", "loc": {...}}, ...},
      "branchMap": {"0": {"type": "if", "locations": [...]}, ...},
      "s": {"0": 1, ...},      // statement hit counts
      "f": {"0": 0, ...},      // function hit counts
      "b": {"0": [1, 0], ...}  // hit count per branch arm
    }

Keys the model does not interpret (``l``, ``hash``, ``inputSourceMap``...)
are carried through unchanged.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

_KNOWN_KEYS = ("path", "statementMap", "fnMap", "branchMap", "s", "f", "b")

CoverageMap = dict[str, "CounterState"]


@dataclass
class CounterState:
    """Execution counts and position metadata for one source file."""

    path: str
    statement_map: dict[str, Any] = field(default_factory=dict)
    fn_map: dict[str, Any] = field(default_factory=dict)
    branch_map: dict[str, Any] = field(default_factory=dict)
    s: dict[str, int] = field(default_factory=dict)
    f: dict[str, int] = field(default_factory=dict)
    b: dict[str, list[int]] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str | None = None) -> CounterState:
        """Build a state from istanbul JSON, copying every nested container."""
        return cls(
            path=str(data.get("path") or path or ""),
            statement_map=copy.deepcopy(data.get("statementMap", {})),
            fn_map=copy.deepcopy(data.get("fnMap", {})),
            branch_map=copy.deepcopy(data.get("branchMap", {})),
            s={key: int(count) for key, count in data.get("s", {}).items()},
            f={key: int(count) for key, count in data.get("f", {}).items()},
            b={key: [int(c) for c in counts] for key, counts in data.get("b", {}).items()},
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the istanbul JSON representation."""
        data: dict[str, Any] = {
            "path": self.path,
            "statementMap": copy.deepcopy(self.statement_map),
            "fnMap": copy.deepcopy(self.fn_map),
            "branchMap": copy.deepcopy(self.branch_map),
            "s": dict(self.s),
            "f": dict(self.f),
            "b": {key: list(counts) for key, counts in self.b.items()},
        }
        data.update(copy.deepcopy(self.extra))
        return data

    def copy(self) -> CounterState:
        return CounterState.from_dict(self.to_dict())

    def zeroed(self) -> CounterState:
        """Return a copy with every statement, function and branch count at zero.

        Also clears istanbul 0.x line counts (``l``) when present.
        """
        state = self.copy()
        state.s = dict.fromkeys(state.s, 0)
        state.f = dict.fromkeys(state.f, 0)
        state.b = {key: [0] * len(counts) for key, counts in state.b.items()}
        if isinstance(state.extra.get("l"), dict):
            state.extra["l"] = dict.fromkeys(state.extra["l"], 0)
        return state

    @property
    def is_zero(self) -> bool:
        return (
            not any(self.s.values())
            and not any(self.f.values())
            and not any(any(counts) for counts in self.b.values())
        )


def merge_counter_states(a: CounterState, b: CounterState) -> CounterState:
    """Sum two states for the same file position by position.

    Both inputs must come from the same instrumentation pass. Position maps
    are unioned (entries from *a* win) so a position known to only one side
    still reaches the report.
    """
    merged = a.copy()
    merged.statement_map = {**copy.deepcopy(b.statement_map), **merged.statement_map}
    merged.fn_map = {**copy.deepcopy(b.fn_map), **merged.fn_map}
    merged.branch_map = {**copy.deepcopy(b.branch_map), **merged.branch_map}
    merged.s = _sum_counts(a.s, b.s)
    merged.f = _sum_counts(a.f, b.f)
    merged.b = _sum_branch_counts(a.b, b.b)

    line_counts_a = a.extra.get("l")
    line_counts_b = b.extra.get("l")
    if isinstance(line_counts_a, dict) and isinstance(line_counts_b, dict):
        merged.extra["l"] = _sum_counts(line_counts_a, line_counts_b)
    elif isinstance(line_counts_b, dict):
        merged.extra["l"] = dict(line_counts_b)

    for key, value in b.extra.items():
        merged.extra.setdefault(key, copy.deepcopy(value))
    return merged


def merge_coverage_maps(*maps: CoverageMap) -> CoverageMap:
    """Merge coverage maps, summing the states of files present in several."""
    merged: CoverageMap = {}
    for coverage_map in maps:
        for file_path, state in coverage_map.items():
            if file_path in merged:
                merged[file_path] = merge_counter_states(merged[file_path], state)
            else:
                merged[file_path] = state.copy()
    return merged


def coverage_map_from_dict(data: dict[str, Any]) -> CoverageMap:
    """Convert raw istanbul JSON (``{path: file_coverage}``) into a coverage map."""
    return {
        file_path: CounterState.from_dict(file_data, path=file_path)
        for file_path, file_data in data.items()
        if isinstance(file_data, dict)
    }


def coverage_map_to_dict(coverage_map: CoverageMap) -> dict[str, Any]:
    """Inverse of :func:`coverage_map_from_dict`."""
    return {file_path: state.to_dict() for file_path, state in coverage_map.items()}


def _sum_counts(a: dict[str, int], b: dict[str, int]) -> dict[str, int]:
    result = dict(a)
    for key, count in b.items():
        result[key] = result.get(key, 0) + count
    return result


def _sum_branch_counts(
    a: dict[str, list[int]], b: dict[str, list[int]]
) -> dict[str, list[int]]:
    result: dict[str, list[int]] = {}
    for key in {**a, **b}:
        left = a.get(key, [])
        right = b.get(key, [])
        width = max(len(left), len(right))
        left = list(left) + [0] * (width - len(left))
        right = list(right) + [0] * (width - len(right))
        result[key] = [x + y for x, y in zip(left, right, strict=True)]
    return result

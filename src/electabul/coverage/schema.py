"""JSON schema for istanbul coverage payloads received from other processes."""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator

_COUNTS = {
    "type": "object",
    "additionalProperties": {"type": "integer", "minimum": 0},
}

_BRANCH_COUNTS = {
    "type": "object",
    "additionalProperties": {
        "type": "array",
        "items": {"type": "integer", "minimum": 0},
    },
}

FILE_COVERAGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["statementMap", "s"],
    "properties": {
        "path": {"type": "string"},
        "statementMap": {"type": "object"},
        "fnMap": {"type": "object"},
        "branchMap": {"type": "object"},
        "s": _COUNTS,
        "f": _COUNTS,
        "b": _BRANCH_COUNTS,
    },
}

_file_validator = Draft7Validator(FILE_COVERAGE_SCHEMA)


def _format(error: Any) -> str:
    return f"{'/'.join(str(part) for part in error.path) or '<root>'}: {error.message}"


def file_coverage_errors(entry: Any) -> list[str]:
    """Return human-readable schema violations for one file's coverage."""
    return [_format(error) for error in _file_validator.iter_errors(entry)]


def split_valid_entries(payload: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Partition a raw coverage map into valid entries and rejected ones.

    Rejected entries map the file key to its first schema violation.
    """
    valid: dict[str, Any] = {}
    rejected: dict[str, str] = {}
    for key, entry in payload.items():
        errors = file_coverage_errors(entry)
        if errors:
            rejected[key] = errors[0]
        else:
            valid[key] = entry
    return valid, rejected

"""Configuration parsing from ``.electabul.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

CONFIG_FILENAME = ".electabul.yml"

SUPPORTED_FORMATS = frozenset({"json", "json-summary", "lcov", "lcovonly", "text", "text-summary"})

DEFAULT_FORMATS = ("json", "lcovonly", "text-summary")


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass
class InstrumentConfig:
    """Static instrumentation settings."""

    node_command: str = "node"
    """Node.js executable used to run istanbul-lib-instrument."""

    node_path: str = ""
    """Extra module search directory for ``istanbul-lib-instrument``."""

    timeout: float = 300.0
    """Maximum seconds a single instrumentation batch may take."""

    es_modules: bool = False
    """Parse sources as ES modules instead of scripts."""


@dataclass
class CoverageOptions:
    """Options accepted by the coverage collector."""

    output_path: str = "."
    """Where reports and the ``data`` snapshot directory are written."""

    lib_path: str = "."
    """Root scanned for ``.js`` files that need a zero baseline."""

    formats: list[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    """Report formats handed to the report writer."""

    query_timeout: float = 10.0
    """Seconds to wait for a window's coverage before closing it (0 = wait forever)."""

    @property
    def resolved_output_path(self) -> Path:
        return Path(self.output_path).resolve()

    @property
    def data_path(self) -> Path:
        """Directory holding one JSON snapshot per reporting process."""
        return self.resolved_output_path / "data"

    @property
    def resolved_lib_path(self) -> Path:
        return Path(self.lib_path).resolve()


@dataclass
class ElectabulConfig:
    """Complete configuration from ``.electabul.yml``."""

    root: str
    """Project root directory."""

    instrument: InstrumentConfig = field(default_factory=InstrumentConfig)
    coverage: CoverageOptions = field(default_factory=CoverageOptions)

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _parse_instrument_config(raw: dict[str, Any]) -> InstrumentConfig:
    """Parse the ``instrument`` section from raw YAML."""
    instrument_raw = _section(raw, "instrument")

    return InstrumentConfig(
        node_command=str(instrument_raw.get("node_command", "node")),
        node_path=str(
            instrument_raw.get("node_path", os.environ.get("ELECTABUL_NODE_PATH", ""))
        ),
        timeout=float(instrument_raw.get("timeout", 300.0)),
        es_modules=bool(instrument_raw.get("es_modules", False)),
    )


def _parse_coverage_options(raw: dict[str, Any], root_path: Path) -> CoverageOptions:
    """Parse the ``coverage`` section; relative paths resolve against *root_path*."""
    coverage_raw = _section(raw, "coverage")

    formats_raw = coverage_raw.get("formats", list(DEFAULT_FORMATS))
    if isinstance(formats_raw, str):
        formats_raw = [formats_raw]
    formats = [str(fmt) for fmt in formats_raw] if isinstance(formats_raw, list) else []

    return CoverageOptions(
        output_path=str(root_path / str(coverage_raw.get("output_path", "."))),
        lib_path=str(root_path / str(coverage_raw.get("lib_path", "."))),
        formats=formats,
        query_timeout=float(coverage_raw.get("query_timeout", 10.0)),
    )


def load_config(root: str | Path) -> ElectabulConfig:
    """Load and parse ``.electabul.yml`` from *root*.

    Falls back to defaults when the file is missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)

    return ElectabulConfig(
        root=str(root_path),
        instrument=_parse_instrument_config(raw),
        coverage=_parse_coverage_options(raw, root_path),
        raw=raw,
    )


def _validate_instrument_config(instrument: InstrumentConfig) -> list[str]:
    errors: list[str] = []

    if not instrument.node_command.strip():
        errors.append("instrument.node_command must not be empty")

    if instrument.timeout <= 0:
        errors.append(f"instrument.timeout must be positive (got: {instrument.timeout})")

    return errors


def _validate_coverage_options(coverage: CoverageOptions) -> list[str]:
    errors: list[str] = []

    unknown = [fmt for fmt in coverage.formats if fmt not in SUPPORTED_FORMATS]
    if unknown:
        errors.append(
            f"coverage.formats contains unsupported formats: {', '.join(unknown)} "
            f"(supported: {', '.join(sorted(SUPPORTED_FORMATS))})"
        )

    if coverage.query_timeout < 0:
        errors.append(
            f"coverage.query_timeout must be non-negative (got: {coverage.query_timeout})"
        )

    return errors


def validate_config(config: ElectabulConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_instrument_config(config.instrument))
    errors.extend(_validate_coverage_options(config.coverage))
    return errors

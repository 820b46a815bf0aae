"""Instrument a source tree and pack it into an asar archive."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from electabul.instrument.asar import package_directory
from electabul.instrument.instrumenter import InstrumentResult, Instrumenter, NodeInstrumenter
from electabul.instrument.tree import InstrumentedTree, discover_sources, instrument_tree

if TYPE_CHECKING:
    from electabul.config import InstrumentConfig

logger = logging.getLogger(__name__)


def create_instrumented_asar(
    input_path: str | Path,
    output_path: str | Path,
    *,
    instrumenter: Instrumenter | None = None,
    config: InstrumentConfig | None = None,
) -> tuple[Path, int]:
    """Instrument every ``.js`` file under *input_path* and pack the result.

    Returns:
        The resolved archive path and the number of instrumented files.
    """
    source_root = Path(input_path).resolve()
    archive_path = Path(output_path).resolve()

    if instrumenter is None:
        instrumenter = (
            NodeInstrumenter.from_config(config, cwd=source_root)
            if config is not None
            else NodeInstrumenter(cwd=source_root)
        )

    tree = instrument_tree(source_root, instrumenter)
    package_directory(tree.root, archive_path)
    return archive_path, tree.file_count


__all__ = [
    "InstrumentResult",
    "InstrumentedTree",
    "Instrumenter",
    "NodeInstrumenter",
    "create_instrumented_asar",
    "discover_sources",
    "instrument_tree",
    "package_directory",
]

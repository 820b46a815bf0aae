"""Instrument every ``.js`` file of a source tree into a temporary mirror."""

from __future__ import annotations

import atexit
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from electabul.errors import InstrumentationError

if TYPE_CHECKING:
    from electabul.instrument.instrumenter import Instrumenter

logger = logging.getLogger(__name__)

SOURCE_GLOB = "**/*.js"

# Temporary trees live until interpreter exit: packaging reads them after
# instrument_tree() returns.
_tracked_temp_dirs: list[Path] = []


def _cleanup_temp_dirs() -> None:
    """Remove every temporary tree created by this process."""
    while _tracked_temp_dirs:
        shutil.rmtree(_tracked_temp_dirs.pop(), ignore_errors=True)


atexit.register(_cleanup_temp_dirs)


def make_tracked_temp_dir(prefix: str = "electabul") -> Path:
    """Create a temporary directory removed when the process exits."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    _tracked_temp_dirs.append(path)
    return path


def discover_sources(root: Path) -> list[Path]:
    """Return every ``.js`` file under *root*, sorted by relative path.

    Dotfiles and anything inside a dot-directory are not sources.
    """
    return sorted(
        p
        for p in root.glob(SOURCE_GLOB)
        if p.is_file() and not _is_hidden(p.relative_to(root))
    )


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


@dataclass
class InstrumentedTree:
    """Location and size of an instrumented copy of a source tree."""

    root: Path
    file_count: int


def instrument_tree(source_root: Path, instrumenter: Instrumenter) -> InstrumentedTree:
    """Instrument all sources under *source_root* into a fresh temporary tree.

    Each file keeps its relative location; the resolved absolute source path
    is the coverage key. Any read or transform failure aborts the whole tree.

    Raises:
        InstrumentationError: If the root is missing or any file fails.
    """
    root = source_root.resolve()
    if not root.is_dir():
        msg = f"Source directory does not exist: {root}"
        raise InstrumentationError(msg)

    sources = discover_sources(root)
    batch: list[tuple[str, str]] = []
    for source_path in sources:
        try:
            batch.append((source_path.read_text(encoding="utf-8"), str(source_path)))
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read {source_path}: {e}"
            raise InstrumentationError(msg) from e

    results = instrumenter.instrument_many(batch)

    temp_root = make_tracked_temp_dir()
    for source_path, result in zip(sources, results, strict=True):
        generated_path = temp_root / source_path.relative_to(root)
        generated_path.parent.mkdir(parents=True, exist_ok=True)
        generated_path.write_text(result.code, encoding="utf-8")
        logger.debug("Instrumented %s", source_path)

    logger.info("Instrumented %d file(s) from %s into %s", len(sources), root, temp_root)
    return InstrumentedTree(root=temp_root, file_count=len(sources))

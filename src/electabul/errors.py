"""Exception hierarchy for electabul."""

from __future__ import annotations


class ElectabulError(Exception):
    """Base class for all electabul failures."""


class InstrumentationError(ElectabulError):
    """Raised when a source tree cannot be read or instrumented."""


class PackagingError(ElectabulError):
    """Raised when the instrumented tree cannot be packed into an archive."""

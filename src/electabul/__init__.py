"""electabul: coverage instrumentation and aggregation for Electron apps."""

__version__ = "0.1.0"

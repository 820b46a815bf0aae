"""Electron process lifecycle hooks for coverage extraction."""

from electabul.hooks.lifecycle import (
    COVERAGE_QUERY_SCRIPT,
    REPORT_COVERAGE_CHANNEL,
    SAVE_COVERAGE_CHANNEL,
    UNLOAD_HOOK_SCRIPT,
    LifecycleHooks,
)

__all__ = [
    "COVERAGE_QUERY_SCRIPT",
    "REPORT_COVERAGE_CHANNEL",
    "SAVE_COVERAGE_CHANNEL",
    "UNLOAD_HOOK_SCRIPT",
    "LifecycleHooks",
]

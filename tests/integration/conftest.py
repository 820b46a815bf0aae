"""Shared fixtures for integration tests."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from electabul.utils.subprocess_runner import run_subprocess

# ── Marker registration ──────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``integration`` marker."""
    config.addinivalue_line("markers", "integration: integration tests")


# ── Toolchain detection ──────────────────────────────────────────


@pytest.fixture(scope="session")
def istanbul_node_path() -> str:
    """Return a usable ``NODE_PATH`` entry, skipping when istanbul is unavailable."""
    if shutil.which("node") is None:
        pytest.skip("Node.js is not installed")

    node_path = os.environ.get("ELECTABUL_NODE_PATH", "")
    result = run_subprocess(
        ["node", "-e", "require.resolve('istanbul-lib-instrument')"],
        env={"NODE_PATH": node_path} if node_path else None,
        cwd=Path.cwd(),
        timeout=30,
    )
    if not result.success:
        pytest.skip("istanbul-lib-instrument is not resolvable from node")
    return node_path

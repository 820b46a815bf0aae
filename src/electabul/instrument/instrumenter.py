"""Static instrumentation through istanbul-lib-instrument.

The transform itself lives in Node.js. :class:`NodeInstrumenter` ships a
small driver script to ``node -e``, sends a batch of ``{path, code}``
requests as JSON on stdin and reads back the instrumented code together with
the initial istanbul coverage object for every file.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from electabul.coverage.model import CounterState
from electabul.errors import InstrumentationError
from electabul.utils.subprocess_runner import SubprocessError, run_subprocess

if TYPE_CHECKING:
    from collections.abc import Sequence

    from electabul.config import InstrumentConfig

logger = logging.getLogger(__name__)

COVERAGE_VARIABLE = "__coverage__"

_DRIVER_SCRIPT = """
const { createInstrumenter } = require('istanbul-lib-instrument');
const options = JSON.parse(process.argv[1] || '{}');
const instrumenter = createInstrumenter({
  coverageVariable: options.coverageVariable,
  esModules: Boolean(options.esModules),
  compact: false,
  produceSourceMap: false
});
let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => { input += chunk; });
process.stdin.on('end', () => {
  const results = JSON.parse(input).map((request) => {
    try {
      const code = instrumenter.instrumentSync(request.code, request.path);
      return { path: request.path, code, coverage: instrumenter.lastFileCoverage() };
    } catch (error) {
      return { path: request.path, error: String((error && error.stack) || error) };
    }
  });
  process.stdout.write(JSON.stringify(results));
});
"""


@dataclass
class InstrumentResult:
    """Instrumented source plus the initial counters for one file."""

    path: str
    code: str
    counter_state: CounterState


class Instrumenter(Protocol):
    """Static instrumentation capability."""

    def instrument(self, source: str, file_path: str) -> InstrumentResult:
        """Instrument one file; *file_path* is the coverage key."""
        ...

    def instrument_many(self, sources: Sequence[tuple[str, str]]) -> list[InstrumentResult]:
        """Instrument ``(source, file_path)`` pairs, preserving order."""
        ...


def _node_executable(command: str) -> str:
    """Resolve the Node.js binary, failing early with a clear message."""
    resolved = shutil.which(command)
    if resolved is None:
        msg = f"Node.js executable not found: {command}"
        raise InstrumentationError(msg)
    return resolved


class NodeInstrumenter:
    """Instrumenter backed by ``istanbul-lib-instrument`` under Node.js.

    Args:
        node_command: Node.js executable name or path.
        node_path: Extra directory added to ``NODE_PATH`` so the driver can
            resolve ``istanbul-lib-instrument``.
        timeout: Maximum seconds for one batch.
        es_modules: Parse sources as ES modules.
        cwd: Working directory for module resolution (defaults to cwd).
    """

    def __init__(
        self,
        *,
        node_command: str = "node",
        node_path: str = "",
        timeout: float = 300.0,
        es_modules: bool = False,
        cwd: Path | None = None,
    ) -> None:
        self._node_command = node_command
        self._node_path = node_path
        self._timeout = timeout
        self._es_modules = es_modules
        self._cwd = cwd

    @classmethod
    def from_config(cls, config: InstrumentConfig, *, cwd: Path | None = None) -> NodeInstrumenter:
        return cls(
            node_command=config.node_command,
            node_path=config.node_path,
            timeout=config.timeout,
            es_modules=config.es_modules,
            cwd=cwd,
        )

    def instrument(self, source: str, file_path: str) -> InstrumentResult:
        return self.instrument_many([(source, file_path)])[0]

    def instrument_many(self, sources: Sequence[tuple[str, str]]) -> list[InstrumentResult]:
        if not sources:
            return []

        requests = [{"path": file_path, "code": source} for source, file_path in sources]
        options = {"coverageVariable": COVERAGE_VARIABLE, "esModules": self._es_modules}
        command = [
            _node_executable(self._node_command),
            "-e",
            _DRIVER_SCRIPT,
            json.dumps(options),
        ]

        env: dict[str, str] = {}
        if self._node_path:
            existing = os.environ.get("NODE_PATH", "")
            env["NODE_PATH"] = os.pathsep.join(p for p in (self._node_path, existing) if p)

        logger.debug("Instrumenting %d file(s) with istanbul-lib-instrument", len(requests))
        try:
            result = run_subprocess(
                command,
                input_text=json.dumps(requests),
                cwd=self._cwd,
                timeout=self._timeout,
                env=env or None,
            )
        except SubprocessError as e:
            raise InstrumentationError(str(e)) from e

        if not result.success:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            msg = f"istanbul-lib-instrument failed: {detail}"
            raise InstrumentationError(msg)

        return _parse_driver_output(result.stdout, [file_path for _, file_path in sources])


def _parse_driver_output(stdout: str, expected_paths: list[str]) -> list[InstrumentResult]:
    """Turn the driver's JSON reply into results, raising on any per-file error."""
    try:
        replies: list[dict[str, Any]] = json.loads(stdout)
    except json.JSONDecodeError as e:
        msg = f"Unexpected output from instrumentation driver: {e}"
        raise InstrumentationError(msg) from e

    if len(replies) != len(expected_paths):
        msg = (
            f"Instrumentation driver returned {len(replies)} results "
            f"for {len(expected_paths)} files"
        )
        raise InstrumentationError(msg)

    results: list[InstrumentResult] = []
    for reply in replies:
        file_path = str(reply.get("path", ""))
        if "error" in reply:
            msg = f"Failed to instrument {file_path}: {reply['error']}"
            raise InstrumentationError(msg)
        results.append(
            InstrumentResult(
                path=file_path,
                code=str(reply["code"]),
                counter_state=CounterState.from_dict(reply.get("coverage") or {}, path=file_path),
            )
        )
    return results

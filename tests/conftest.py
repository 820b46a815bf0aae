"""Shared fixtures: an in-process instrumenter and a fake Electron host."""

from __future__ import annotations

import asyncio
import inspect
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from electabul.config import CoverageOptions
from electabul.coverage.model import CounterState
from electabul.instrument.instrumenter import InstrumentResult

_FUNCTION_DECL_RE = re.compile(r"^\s*function\s+(\w+)\s*\(")


def _loc(line: int, end_column: int) -> dict[str, Any]:
    return {"start": {"line": line, "column": 0}, "end": {"line": line, "column": end_column}}


def fake_counter_state(source: str, file_path: str) -> CounterState:
    """One statement per non-blank line, one function per ``function name(``.

    Like istanbul, statements that declare a function start at 1.
    """
    statement_map: dict[str, Any] = {}
    fn_map: dict[str, Any] = {}
    s: dict[str, int] = {}
    f: dict[str, int] = {}

    for line_number, text in enumerate(source.splitlines(), start=1):
        if not text.strip() or text.strip() == "}":
            continue
        stmt_id = str(len(statement_map))
        statement_map[stmt_id] = _loc(line_number, len(text))
        match = _FUNCTION_DECL_RE.match(text)
        s[stmt_id] = 1 if match else 0
        if match:
            fn_id = str(len(fn_map))
            fn_map[fn_id] = {
                "name": match.group(1),
                "decl": _loc(line_number, len(text)),
                "loc": _loc(line_number, len(text)),
            }
            f[fn_id] = 0

    return CounterState(
        path=file_path,
        statement_map=statement_map,
        fn_map=fn_map,
        branch_map={},
        s=s,
        f=f,
        b={},
    )


class FakeInstrumenter:
    """In-process stand-in for istanbul-lib-instrument."""

    def __init__(self, *, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []

    def instrument(self, source: str, file_path: str) -> InstrumentResult:
        return self.instrument_many([(source, file_path)])[0]

    def instrument_many(self, sources: Sequence[tuple[str, str]]) -> list[InstrumentResult]:
        from electabul.errors import InstrumentationError

        results = []
        for source, file_path in sources:
            self.calls.append(file_path)
            if self.fail_on and file_path.endswith(self.fail_on):
                msg = f"Failed to instrument {file_path}: SyntaxError"
                raise InstrumentationError(msg)
            results.append(
                InstrumentResult(
                    path=file_path,
                    code=f"/* instrumented */\n{source}",
                    counter_state=fake_counter_state(source, file_path),
                )
            )
        return results


# ── Fake Electron host ───────────────────────────────────────────


class FakeEmitter:
    """Minimal ``EventEmitter``: sync and async listeners, in order."""

    def __init__(self) -> None:
        self.listeners: dict[str, list[Any]] = {}

    def on(self, event: str, listener: Any) -> None:
        self.listeners.setdefault(event, []).append(listener)

    async def emit(self, event: str, *args: Any) -> None:
        for listener in self.listeners.get(event, []):
            result = listener(*args)
            if inspect.isawaitable(result):
                await result


@dataclass
class FakeWebContents:
    id: int = 1
    kind: str = "window"
    result: Any = None
    delay: float = 0.0
    error: Exception | None = None
    scripts: list[str] = field(default_factory=list)

    def get_type(self) -> str:
        return self.kind

    async def execute_javascript(self, code: str) -> Any:
        self.scripts.append(code)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class FakeIpcEvent:
    sender: FakeWebContents


class FakeCloseEvent:
    def __init__(self) -> None:
        self.default_prevented = False

    def prevent_default(self) -> None:
        self.default_prevented = True


class FakeWindow(FakeEmitter):
    def __init__(
        self,
        *,
        window_id: int = 7,
        url: str = "file:///app/index.html",
        devtools: FakeWebContents | None = None,
        destroyed: bool = False,
    ) -> None:
        super().__init__()
        self.id = window_id
        self.url = url
        self.devtools_web_contents = devtools
        self.destroyed = destroyed
        self.close_calls = 0
        self.closed = False

    def is_destroyed(self) -> bool:
        return self.destroyed

    def get_url(self) -> str:
        return self.url

    def close(self) -> None:
        self.close_calls += 1
        event = FakeCloseEvent()
        for listener in self.listeners.get("close", []):
            listener(event)
        if not event.default_prevented:
            self.closed = True
            self.destroyed = True


# ── Fixtures ─────────────────────────────────────────────────────


def write_file(root: Path, rel: str, content: str) -> Path:
    """Write *content* to a file under *root*."""
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


@pytest.fixture()
def fake_instrumenter() -> FakeInstrumenter:
    return FakeInstrumenter()


@pytest.fixture()
def lib_dir(tmp_path: Path) -> Path:
    """A small library: ``a.js`` with a statement and a function, ``b.js`` never loaded."""
    lib = tmp_path / "lib"
    write_file(lib, "a.js", "var x = 1;\nfunction unused() {\n  return 2;\n}\n")
    write_file(lib, "nested/b.js", "function helper() {\n  return 3;\n}\n")
    return lib.resolve()


@pytest.fixture()
def coverage_options(tmp_path: Path, lib_dir: Path) -> CoverageOptions:
    return CoverageOptions(
        output_path=str(tmp_path / "coverage"),
        lib_path=str(lib_dir),
        formats=["json"],
    )

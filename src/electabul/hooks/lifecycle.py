"""Pull and push paths that move renderer coverage into the collector.

Pull: when an instrumented window is about to close, its devtools contents
are asked for ``window.__coverage__`` and the process id; the close is
deferred until the answer is saved (or the query fails or times out).

Push: renderers send their coverage over IPC on ``beforeunload`` (injected
into every new web contents) and extensions send ``report-coverage``
messages. Both land in :meth:`CoverageCollector.save_coverage_data`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from pathlib import Path

    from electabul.coverage.collector import CoverageCollector
    from electabul.hooks.host import (
        App,
        BrowserWindow,
        CloseEvent,
        IpcEvent,
        IpcMain,
        WebContents,
    )

logger = logging.getLogger(__name__)

SAVE_COVERAGE_CHANNEL = "save-coverage"
REPORT_COVERAGE_CHANNEL = "report-coverage"

COVERAGE_QUERY_SCRIPT = "[window.__coverage__, window.process && window.process.pid]"

UNLOAD_HOOK_SCRIPT = """
window.addEventListener('beforeunload', function () {
  if (typeof require !== 'undefined') {
    require('electron').ipcRenderer.send(
      'save-coverage', window.__coverage__, window.process && window.process.pid)
  }
})
"""


class LifecycleHooks:
    """Wires an Electron app's windows and IPC channel to a collector.

    Args:
        collector: Destination for every extracted coverage payload.
        app: The Electron ``app`` event emitter.
        ipc: The main-process IPC channel (``ipcMain``).
        query_timeout: Seconds to wait for a closing window's coverage;
            ``0`` waits indefinitely. Defaults to the collector's setting.
    """

    def __init__(
        self,
        collector: CoverageCollector,
        *,
        app: App | None = None,
        ipc: IpcMain | None = None,
        query_timeout: float | None = None,
    ) -> None:
        self._collector = collector
        self._app = app
        self._ipc = ipc
        self._query_timeout = collector.query_timeout if query_timeout is None else query_timeout
        self._released: set[int] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._armed = False

    def arm(self) -> None:
        """Register the push listeners and guard every window created from now on."""
        if self._armed:
            return
        self._armed = True

        if self._ipc is not None:
            self._ipc.on(SAVE_COVERAGE_CHANNEL, self._on_save_coverage)
            self._ipc.on(REPORT_COVERAGE_CHANNEL, self._on_report_coverage)

        if self._app is not None:
            self._app.on("web-contents-created", self._on_web_contents_created)
            self._app.on("browser-window-created", self._on_browser_window_created)

    async def drain(self) -> None:
        """Wait for in-flight extractions, e.g. before generating the report."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ── Pull path ────────────────────────────────────────────────

    @staticmethod
    def has_coverage_target(window: BrowserWindow) -> bool:
        """Return True if the window can still be asked for its coverage."""
        return (
            not window.is_destroyed()
            and bool(window.get_url())
            and window.devtools_web_contents is not None
        )

    def guard_window(self, window: BrowserWindow) -> None:
        """Subscribe to the window's ``close`` event to collect coverage first."""
        window.on("close", lambda event, *_: self._on_window_close(window, event))

    def _on_window_close(self, window: BrowserWindow, event: CloseEvent) -> None:
        if window.id in self._released:
            self._released.discard(window.id)
            return
        if not self.has_coverage_target(window):
            return

        event.prevent_default()
        self._spawn(self.close_window(window, self._release_and_close(window)))

    def _release_and_close(self, window: BrowserWindow) -> Callable[[], Any]:
        def _close() -> None:
            self._released.add(window.id)
            window.close()

        return _close

    async def close_window(
        self, window: BrowserWindow, close: Callable[[], Any] | None = None
    ) -> None:
        """Collect the window's coverage, then run *close*.

        *close* defaults to ``window.close`` and always runs exactly once,
        whatever happens to the coverage query.
        """
        do_close = close or window.close
        try:
            if self.has_coverage_target(window):
                contents = window.devtools_web_contents
                if contents is not None:
                    await self.save_web_contents_coverage(contents)
        finally:
            result = do_close()
            if inspect.isawaitable(result):
                await result

    async def get_coverage_from_web_contents(
        self, contents: WebContents
    ) -> tuple[dict[str, Any] | None, Any]:
        """Ask *contents* for its coverage object and process id."""
        query = contents.execute_javascript(COVERAGE_QUERY_SCRIPT)
        if self._query_timeout > 0:
            results = await asyncio.wait_for(query, timeout=self._query_timeout)
        else:
            results = await query

        if not isinstance(results, (list, tuple)) or not results:
            return None, None
        coverage = results[0] if isinstance(results[0], dict) else None
        pid = results[1] if len(results) > 1 else None
        return coverage, pid

    async def save_web_contents_coverage(self, contents: WebContents) -> Path | None:
        """Query and persist; failures are logged, never raised."""
        try:
            coverage, pid = await self.get_coverage_from_web_contents(contents)
        except TimeoutError:
            logger.warning(
                "Timed out after %.1fs waiting for coverage from web contents %s",
                self._query_timeout,
                contents.id,
            )
            return None
        except Exception:
            logger.exception("Failed to query coverage from web contents %s", contents.id)
            return None

        return self._save(contents, coverage, pid)

    # ── Push path ────────────────────────────────────────────────

    def _save(self, contents: WebContents, coverage: Any, pid: Any) -> Path | None:
        if coverage is not None and not isinstance(coverage, dict):
            logger.warning("Ignoring non-object coverage payload from %s", contents.id)
            return None
        try:
            return self._collector.save_coverage_data(contents, coverage, pid)
        except OSError:
            logger.exception("Failed to persist coverage from web contents %s", contents.id)
            return None

    def _on_save_coverage(self, event: IpcEvent, coverage: Any = None, pid: Any = None) -> None:
        self._save(event.sender, coverage, pid)

    def _on_report_coverage(self, event: IpcEvent, message: Any = None) -> None:
        if not isinstance(message, dict):
            logger.warning("Ignoring malformed %s message", REPORT_COVERAGE_CHANNEL)
            return
        self._save(event.sender, message.get("coverage"), f"{message.get('pid')}-extension")

    def _on_web_contents_created(self, _event: Any, contents: WebContents) -> None:
        self._spawn(self._inject_unload_hook(contents))

    def _on_browser_window_created(self, _event: Any, window: BrowserWindow) -> None:
        self.guard_window(window)

    async def _inject_unload_hook(self, contents: WebContents) -> None:
        try:
            await contents.execute_javascript(UNLOAD_HOOK_SCRIPT)
        except Exception:
            logger.warning("Could not install coverage unload hook in %s", contents.id)

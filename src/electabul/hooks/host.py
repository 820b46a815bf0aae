"""Structural types for the Electron main-process objects the hooks touch.

The host binding supplies concrete objects; only these members are used.
Listeners are plain callables invoked on the coordinator's asyncio loop.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

Listener = Callable[..., Any]


class WebContents(Protocol):
    """A renderer's web contents (window page, devtools, webview, extension...)."""

    @property
    def id(self) -> int: ...

    def get_type(self) -> str:
        """Kind of contents: ``window``, ``webview``, ``backgroundPage``, ..."""
        ...

    def execute_javascript(self, code: str) -> Awaitable[Any]:
        """Evaluate *code* in the renderer and resolve with its result."""
        ...


class CloseEvent(Protocol):
    def prevent_default(self) -> None: ...


class BrowserWindow(Protocol):
    @property
    def id(self) -> int: ...

    @property
    def devtools_web_contents(self) -> WebContents | None: ...

    def is_destroyed(self) -> bool: ...

    def get_url(self) -> str: ...

    def close(self) -> None: ...

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe to a window event such as ``close``."""
        ...


class IpcEvent(Protocol):
    @property
    def sender(self) -> WebContents: ...


class IpcMain(Protocol):
    def on(self, channel: str, listener: Listener) -> None: ...


class App(Protocol):
    def on(self, event: str, listener: Listener) -> None: ...

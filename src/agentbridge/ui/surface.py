"""UI surfaces: where outbound UI calls go.

``call`` is synchronous and must be invoked from the event loop. The WebSocket
surface queues each call and a single writer task sends them in order, so
callers never suspend and ordering matches call order.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from agentbridge.logging import get_logger
from agentbridge.ui.js import build_js_call

if TYPE_CHECKING:
    from fastapi import WebSocket

log = get_logger("ui.surface")


@runtime_checkable
class UISurface(Protocol):
    """Capability to invoke named UI functions with string arguments."""

    def call(self, function_name: str, *args: str) -> None: ...


class WebSocketSurface:
    """UI surface backed by a browser connected over a WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Accept the connection and start the writer task."""
        await self._websocket.accept()
        self._writer = asyncio.create_task(self._write_loop(), name="ui-surface-writer")

    def call(self, function_name: str, *args: str) -> None:
        if self._closed:
            return
        self._queue.put_nowait(build_js_call(function_name, *args))

    async def _write_loop(self) -> None:
        while True:
            script = await self._queue.get()
            if script is None:
                return
            try:
                await self._websocket.send_json({"type": "call", "script": script})
            except Exception as e:
                # Browser went away; drop anything still queued
                log.debug("UI surface send failed: %s", e)
                self._closed = True
                return

    async def aclose(self) -> None:
        """Flush queued calls and stop the writer."""
        if self._closed and self._writer is None:
            return
        self._closed = True
        self._queue.put_nowait(None)
        if self._writer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None

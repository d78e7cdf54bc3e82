"""Shared dependencies handed to every message handler.

Handlers read ``context.session`` on every event and never keep a
reference: the window swaps in a new Session on "new session" and
"load history", and handlers must see the swap immediately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from agentbridge.errors import SessionStateError
from agentbridge.logging import get_logger

if TYPE_CHECKING:
    from agentbridge.backend.protocol import BackendBridge
    from agentbridge.config.schema import Config
    from agentbridge.history import HistoryLoader
    from agentbridge.project import Project
    from agentbridge.session.session import Session
    from agentbridge.settings import SettingsStore
    from agentbridge.ui.surface import UISurface

log = get_logger("handlers")


@dataclass
class HandlerContext:
    """Capabilities available to handlers.

    ``model`` and ``backend`` are the window-level choices applied to every
    new Session.
    """

    project: Project
    config: Config
    bridges: Mapping[str, BackendBridge]
    settings: SettingsStore
    history: HistoryLoader
    model: str
    backend: str
    ui: UISurface | None = None
    disposed: bool = False
    _session: Session | None = field(default=None, repr=False)
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set, repr=False)

    @property
    def session(self) -> Session:
        if self._session is None:
            raise SessionStateError("No active session")
        return self._session

    def set_session(self, session: Session) -> None:
        self._session = session

    def call_ui(self, function_name: str, *args: str) -> None:
        """Invoke a UI function. No-op once disposed or without a surface."""
        if self.disposed:
            return
        surface = self.ui
        if surface is None:
            return
        try:
            surface.call(function_name, *args)
        except Exception as e:
            log.warning("UI call %s failed: %s", function_name, e)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, error_prefix: str) -> asyncio.Task[Any]:
        """Run ``coro`` in the background; failures become UI error messages."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                log.warning("%s: %s", error_prefix, exc)
                self.call_ui("addErrorMessage", f"{error_prefix}: {exc}")

        task.add_done_callback(_done)
        return task

    async def aclose(self) -> None:
        """Cancel outstanding background work (except the calling task)."""
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

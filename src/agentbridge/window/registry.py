"""Per-project window registry."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from typing import TYPE_CHECKING

from agentbridge.logging import get_logger

if TYPE_CHECKING:
    from agentbridge.window.controller import ChatWindow

log = get_logger("window.registry")

# A window that is still starting gets this long before a selection is pushed
SELECTION_DEFER_SECONDS = 0.5


class WindowRegistry:
    """At most one ChatWindow per project key."""

    def __init__(self) -> None:
        self._windows: dict[str, ChatWindow] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, key: object) -> bool:
        return key in self._windows

    def __iter__(self) -> Iterator[ChatWindow]:
        return iter(list(self._windows.values()))

    def get(self, key: str) -> ChatWindow | None:
        return self._windows.get(key)

    async def register(self, window: ChatWindow) -> None:
        """Make ``window`` the project's window, disposing any previous one."""
        key = window.project.key
        previous = self._windows.get(key)
        self._windows[key] = window
        if previous is not None and previous is not window:
            log.info("Replacing window for %s", key)
            await previous.dispose()

    async def unregister(self, window: ChatWindow) -> None:
        key = window.project.key
        if self._windows.get(key) is window:
            del self._windows[key]
        await window.dispose()

    async def add_selection(self, key: str, text: str) -> bool:
        """Push editor selection text into the project's window.

        Returns False when the project has no window.
        """
        window = self._windows.get(key)
        if window is None:
            log.debug("No window for %s; selection dropped", key)
            return False
        if not window.initialized:
            await asyncio.sleep(SELECTION_DEFER_SECONDS)
        window.add_selection_info(text)
        return True

    async def close_all(self) -> None:
        windows = list(self._windows.values())
        self._windows.clear()
        for window in windows:
            try:
                await window.dispose()
            except Exception:
                log.exception("Failed to dispose window for %s", window.project.key)

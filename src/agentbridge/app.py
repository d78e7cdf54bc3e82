"""Application context: shared collaborators and the window registry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from agentbridge.backend import create_bridges
from agentbridge.config import load_config
from agentbridge.history import HistoryLoader
from agentbridge.logging import get_logger
from agentbridge.project import Project
from agentbridge.settings import SettingsStore
from agentbridge.window import ChatWindow, RefreshHook, WindowRegistry

if TYPE_CHECKING:
    from agentbridge.backend.protocol import BackendBridge
    from agentbridge.config.schema import Config

log = get_logger("app")


class AgentBridgeApp:
    """Owns everything windows share. Use as an async context manager.

    Example:
        async with AgentBridgeApp() as app:
            window = await app.open_window("/path/to/project")
            window.handle_ui_message("send_message:hello")
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        bridges: Mapping[str, BackendBridge] | None = None,
        settings: SettingsStore | None = None,
        history: HistoryLoader | None = None,
        refresh_hook: RefreshHook | None = None,
    ) -> None:
        self.config = config or load_config()
        self.bridges = dict(bridges) if bridges is not None else create_bridges(self.config.backend)
        self.settings = settings or SettingsStore()
        self.history = history or HistoryLoader()
        self.registry = WindowRegistry()
        self._refresh_hook = refresh_hook

    async def __aenter__(self) -> AgentBridgeApp:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def get_window(self, project_path: str) -> ChatWindow | None:
        return self.registry.get(Project.from_path(project_path).key)

    async def open_window(self, project_path: str) -> ChatWindow:
        """Return the project's window, creating and starting it if needed."""
        project = Project.from_path(project_path)
        existing = self.registry.get(project.key)
        if existing is not None and not existing.disposed:
            return existing

        window = ChatWindow(
            project,
            config=self.config,
            bridges=self.bridges,
            settings=self.settings,
            history=self.history,
            refresh_hook=self._refresh_hook,
        )
        await self.registry.register(window)
        await window.start()
        log.info("Opened window for %s", project.root)
        return window

    async def close_window(self, project_path: str) -> bool:
        window = self.get_window(project_path)
        if window is None:
            return False
        await self.registry.unregister(window)
        return True

    async def aclose(self) -> None:
        await self.registry.close_all()

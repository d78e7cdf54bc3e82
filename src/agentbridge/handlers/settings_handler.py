"""Window settings: model, backend and the manual Node.js path."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING

from agentbridge.backend.claude import ClaudeBridge
from agentbridge.handlers.base import MessageHandler
from agentbridge.logging import get_logger
from agentbridge.settings import NODE_PATH_KEY

if TYPE_CHECKING:
    from agentbridge.handlers.context import HandlerContext

log = get_logger("handlers.settings")


class SettingsHandler(MessageHandler):
    supported_types = frozenset({"get_settings", "set_model", "set_backend", "save_node_path"})

    def __init__(
        self,
        context: HandlerContext,
        on_model_changed: Callable[[], None] | None = None,
        on_node_path_changed: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(context)
        self._on_model_changed = on_model_changed
        self._on_node_path_changed = on_node_path_changed

    def handle(self, msg_type: str, content: str) -> None:
        content = content.strip()
        if msg_type == "get_settings":
            self.push_settings()
        elif msg_type == "set_model":
            self._set_model(content)
        elif msg_type == "set_backend":
            self._set_backend(content)
        elif msg_type == "save_node_path":
            self.save_node_path(content or None)

    def push_settings(self) -> None:
        claude = self.context.bridges.get("claude")
        node_path = claude.node_executable if isinstance(claude, ClaudeBridge) else None
        self.context.call_ui(
            "updateSettings",
            json.dumps(
                {
                    "model": self.context.model,
                    "backend": self.context.backend,
                    "backends": sorted(self.context.bridges),
                    "nodePath": node_path or "",
                }
            ),
        )

    def _set_model(self, model: str) -> None:
        if not model:
            return
        self.context.model = model
        self.context.session.model = model
        log.info("Model set to %s", model)
        if self._on_model_changed:
            self._on_model_changed()

    def _set_backend(self, backend: str) -> None:
        if backend not in self.context.bridges:
            self.context.call_ui("addErrorMessage", f"Unknown backend: {backend}")
            return
        self.context.session.set_backend(backend)
        self.context.backend = backend
        log.info("Backend set to %s", backend)
        self.push_settings()

    def save_node_path(self, path: str | None) -> None:
        """Persist (or clear) the manual Node.js path and re-check the runtime."""
        if path:
            self.context.settings.set(NODE_PATH_KEY, path)
            log.info("Saved manual Node.js path: %s", path)
        else:
            self.context.settings.unset(NODE_PATH_KEY)
            log.info("Cleared manual Node.js path")

        claude = self.context.bridges.get("claude")
        if isinstance(claude, ClaudeBridge):
            claude.set_node_executable(path)
        if self._on_node_path_changed:
            self._on_node_path_changed()

"""Stored conversations: listing and reopening."""

from __future__ import annotations

import json
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from agentbridge.handlers.base import MessageHandler
from agentbridge.handlers.payloads import LoadHistoryPayload
from agentbridge.logging import get_logger

if TYPE_CHECKING:
    from agentbridge.handlers.context import HandlerContext

log = get_logger("handlers.history")

# (session_id, project_path) -> coroutine that swaps in the loaded session
SessionLoadCallback = Callable[[str, str | None], Coroutine[Any, Any, None]]


class HistoryHandler(MessageHandler):
    supported_types = frozenset({"load_history", "list_history"})

    def __init__(self, context: HandlerContext, on_load: SessionLoadCallback) -> None:
        super().__init__(context)
        self._on_load = on_load

    def handle(self, msg_type: str, content: str) -> None:
        if msg_type == "list_history":
            self.context.spawn(self._list(), error_prefix="Failed to list sessions")
            return

        content = content.strip()
        if content.startswith("{"):
            try:
                payload = LoadHistoryPayload.model_validate_json(content)
            except ValidationError as e:
                log.warning("Malformed load_history payload: %s", e)
                return
        elif content:
            payload = LoadHistoryPayload(session_id=content)
        else:
            log.warning("load_history without a session id")
            return
        self.context.spawn(
            self._on_load(payload.session_id, payload.project_path),
            error_prefix="Failed to load session",
        )

    async def _list(self) -> None:
        summaries = await self.context.history.list_sessions(self.context.project.root)
        self.context.call_ui("setHistoryData", json.dumps([s.to_dict() for s in summaries]))

"""Conversation turns: sending input and interrupting."""

from __future__ import annotations

from pydantic import ValidationError

from agentbridge.handlers.base import MessageHandler
from agentbridge.handlers.payloads import SendMessagePayload
from agentbridge.logging import get_logger

log = get_logger("handlers.session")


class SessionHandler(MessageHandler):
    supported_types = frozenset({"send_message", "interrupt_session"})

    def handle(self, msg_type: str, content: str) -> None:
        if msg_type == "send_message":
            self._send(content)
        elif msg_type == "interrupt_session":
            self.context.spawn(self.context.session.interrupt(), error_prefix="Interrupt failed")

    def _send(self, content: str) -> None:
        text = content
        if content.startswith("{"):
            try:
                text = SendMessagePayload.model_validate_json(content).text
            except ValidationError:
                pass  # plain text that happens to start with a brace
        if not text.strip():
            log.debug("Ignoring empty message")
            return
        self.context.spawn(self.context.session.send(text), error_prefix="Send failed")

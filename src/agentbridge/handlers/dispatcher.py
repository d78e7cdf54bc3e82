"""Routes inbound UI messages to the first handler that accepts them."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentbridge.logging import get_logger

if TYPE_CHECKING:
    from agentbridge.handlers.base import MessageHandler

log = get_logger("dispatcher")


class MessageDispatcher:
    """Ordered handler registry with first-match dispatch.

    Registration order decides which handler wins when two accept the same
    type; later registrations for that type are never reached.
    """

    def __init__(self) -> None:
        self._handlers: list[MessageHandler] = []

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def register(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def dispatch(self, msg_type: str, content: str) -> bool:
        """Deliver a message. Returns False when no handler accepts ``msg_type``.

        A handler that raises still counts as handled; the error is logged
        and reported to the UI by the handler's context.
        """
        for handler in list(self._handlers):
            if not handler.handles(msg_type):
                continue
            try:
                handler.handle(msg_type, content)
            except Exception as e:
                log.exception("Handler %s failed on %s", type(handler).__name__, msg_type)
                handler.context.call_ui("addErrorMessage", f"{msg_type} failed: {e}")
            return True
        return False

    def clear(self) -> None:
        self._handlers = []

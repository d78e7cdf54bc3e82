"""Base class for UI message handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from agentbridge.handlers.context import HandlerContext


class MessageHandler(ABC):
    """Handles a fixed set of inbound UI message types.

    Subclasses list their types in ``supported_types`` and implement
    ``handle``. ``handle`` runs on the event loop and must not block; long
    work goes through ``context.spawn``.
    """

    supported_types: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, context: HandlerContext) -> None:
        self.context = context

    def handles(self, msg_type: str) -> bool:
        return msg_type in self.supported_types

    @abstractmethod
    def handle(self, msg_type: str, content: str) -> None:
        """Process one message of a supported type."""

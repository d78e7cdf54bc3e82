"""Session layer: conversation state, history and tagged events."""

from agentbridge.session.events import (
    MessagesUpdated,
    PermissionRequested,
    SessionEvent,
    SessionIdAssigned,
    SessionListener,
    StateChanged,
    ThinkingChanged,
)
from agentbridge.session.messages import Message, MessageType, extract_text
from agentbridge.session.session import Session, SessionPermissionRequester

__all__ = [
    "Message",
    "MessageType",
    "MessagesUpdated",
    "PermissionRequested",
    "Session",
    "SessionEvent",
    "SessionIdAssigned",
    "SessionListener",
    "SessionPermissionRequester",
    "StateChanged",
    "ThinkingChanged",
    "extract_text",
]

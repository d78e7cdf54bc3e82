"""Contract between sessions and backend agent bridges.

A bridge owns the agent process. For each turn it yields BackendEvents
in the order the agent produced them, asks the session whenever the agent
wants to run a gated tool, and stops the turn on ``interrupt``.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentbridge.session.messages import Message


class BackendEventKind(Enum):
    """Kinds of events a bridge yields while a turn streams."""

    MESSAGE = "message"  # New history entry
    SESSION_ID = "session_id"  # Backend announced the conversation id
    THINKING = "thinking"  # Reasoning started/stopped
    USAGE = "usage"  # Token usage for the latest assistant reply
    ERROR = "error"  # Backend reported a failed turn


@dataclass(frozen=True, slots=True)
class BackendEvent:
    """A single increment of a streamed backend turn."""

    kind: BackendEventKind
    message: Message | None = None
    session_id: str | None = None
    thinking: bool | None = None
    usage: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def of_message(cls, message: Message) -> BackendEvent:
        return cls(BackendEventKind.MESSAGE, message=message)

    @classmethod
    def of_session_id(cls, session_id: str) -> BackendEvent:
        return cls(BackendEventKind.SESSION_ID, session_id=session_id)

    @classmethod
    def of_thinking(cls, thinking: bool) -> BackendEvent:
        return cls(BackendEventKind.THINKING, thinking=thinking)

    @classmethod
    def of_usage(cls, usage: dict[str, Any]) -> BackendEvent:
        return cls(BackendEventKind.USAGE, usage=usage)

    @classmethod
    def of_error(cls, error: str) -> BackendEvent:
        return cls(BackendEventKind.ERROR, error=error)


@dataclass(frozen=True, slots=True)
class TurnRequest:
    """Everything a bridge needs to run one turn."""

    prompt: str
    cwd: str
    session_id: str | None = None
    model: str | None = None
    turn_id: str = field(default_factory=lambda: uuid.uuid4().hex)


# async (tool_name, inputs) -> allowed
PermissionRequester = Callable[[str, dict[str, Any]], Awaitable[bool]]


@runtime_checkable
class BackendBridge(Protocol):
    """Protocol implemented by every backend agent bridge."""

    name: str

    async def check_environment(self) -> bool:
        """Return True when the runtime needed by this backend is usable."""
        ...

    def stream(
        self, turn: TurnRequest, permission_requester: PermissionRequester
    ) -> AsyncIterator[BackendEvent]:
        """Run ``turn`` and yield its events until the turn ends.

        Raises:
            BackendUnavailableError: If the agent process cannot be started.
            BackendProtocolError: If the agent process fails mid-turn.
        """
        ...

    async def interrupt(self, turn: TurnRequest) -> None:
        """Ask the backend to stop ``turn``. No-op if it already finished."""
        ...

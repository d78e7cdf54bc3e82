"""Tagged events emitted by a Session.

A Session has a single listener that receives these events in the order they
were produced. Every event carries the ``source`` token of the Session that
emitted it, so consumers can tell a current Session's events from a stale one.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from agentbridge.session.messages import Message


@dataclass(frozen=True, slots=True)
class MessagesUpdated:
    """History changed (append or wholesale replace); carries a snapshot."""

    source: str
    messages: tuple[Message, ...]


@dataclass(frozen=True, slots=True)
class StateChanged:
    """busy/loading transition. ``error`` is set only on failure."""

    source: str
    busy: bool
    loading: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class SessionIdAssigned:
    """The backend assigned an id to a previously unpersisted session."""

    source: str
    session_id: str


@dataclass(frozen=True, slots=True)
class PermissionRequested:
    """The backend asked to run a gated tool."""

    source: str
    request_id: str
    tool_name: str
    inputs: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ThinkingChanged:
    """The backend started or stopped reasoning."""

    source: str
    thinking: bool


SessionEvent = Union[
    MessagesUpdated, StateChanged, SessionIdAssigned, PermissionRequested, ThinkingChanged
]

SessionListener = Callable[[SessionEvent], None]

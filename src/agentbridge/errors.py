"""Exception hierarchy for agentbridge.

Errors are scoped to a single session or window; nothing here is meant to
escape to the hosting process.
"""

from __future__ import annotations

from dataclasses import dataclass


class AgentBridgeError(Exception):
    """Base class for all agentbridge errors."""


class SessionBusyError(AgentBridgeError):
    """Raised when a turn is started while another turn is in flight."""

    def __init__(self, session_id: str | None) -> None:
        self.session_id = session_id
        super().__init__(
            f"Session {session_id or '<new>'} is busy; interrupt the current turn first"
        )


class SessionStateError(AgentBridgeError):
    """Raised when a Session operation is invalid in its current state."""


@dataclass
class BackendUnavailableError(AgentBridgeError):
    """The backend runtime (node, codex) could not be found or started."""

    backend: str
    executable: str | None
    detail: str = ""

    def __str__(self) -> str:
        where = self.executable or "<not found>"
        msg = f"{self.backend} backend unavailable (executable: {where})"
        if self.detail:
            msg += f": {self.detail}"
        return msg


class BackendProtocolError(AgentBridgeError):
    """The backend process emitted a frame that could not be interpreted."""


class HistoryLoadError(AgentBridgeError):
    """Persisted history for a session could not be read."""

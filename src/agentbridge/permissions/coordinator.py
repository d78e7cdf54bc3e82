"""Correlates backend tool-permission requests with user decisions.

The backend blocks a gated tool call on ``request_permission``. The
coordinator shows a prompt through the UI and completes the pending request
when the user answers via ``resolve``. Every request gets exactly one
decision: the user's, a timeout, or a deny on disposal.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agentbridge.logging import get_logger

log = get_logger("permissions")


class DecisionSource(Enum):
    """Who or what produced a permission decision."""

    USER = "user"
    TIMEOUT = "timeout"
    DISPOSED = "disposed"


@dataclass(frozen=True, slots=True)
class PermissionRequest:
    """A pending request to run a gated tool."""

    request_id: str
    tool_name: str
    inputs: dict[str, Any]
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {"requestId": self.request_id, "toolName": self.tool_name, "inputs": self.inputs}


@dataclass(frozen=True, slots=True)
class PermissionDecision:
    request_id: str
    allowed: bool
    source: DecisionSource = DecisionSource.USER


class PermissionCoordinator:
    """Pending-request table keyed by request id.

    Args:
        prompt: Shows a request to the user. Called on the event loop.
        on_denied: Called once per request denied by the user or by timeout.
        timeout: Seconds before an unanswered request is denied; None waits
            indefinitely.
    """

    def __init__(
        self,
        prompt: Callable[[PermissionRequest], None],
        on_denied: Callable[[PermissionRequest], None] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._prompt = prompt
        self._on_denied = on_denied
        self._timeout = timeout
        self._pending: dict[str, tuple[PermissionRequest, asyncio.Future[PermissionDecision]]] = {}
        self._disposed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def pending_requests(self) -> list[PermissionRequest]:
        return [request for request, _ in self._pending.values()]

    async def request_permission(
        self,
        tool_name: str,
        inputs: dict[str, Any],
        *,
        request_id: str | None = None,
    ) -> PermissionDecision:
        """Prompt the user and wait for the decision.

        Cancelling the caller does not withdraw the request: it stays pending
        until the user answers, it times out, or the coordinator is disposed,
        and a denial still reaches ``on_denied``.
        """
        request = PermissionRequest(
            request_id=request_id or uuid.uuid4().hex,
            tool_name=tool_name,
            inputs=dict(inputs),
        )
        if self._disposed:
            log.info("Denying %s: UI already disposed", tool_name)
            return PermissionDecision(request.request_id, False, DecisionSource.DISPOSED)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[PermissionDecision] = loop.create_future()
        self._pending[request.request_id] = (request, future)

        expiry: asyncio.TimerHandle | None = None
        if self._timeout is not None:
            expiry = loop.call_later(self._timeout, self._expire, request.request_id)

        def _forget(_: asyncio.Future[PermissionDecision]) -> None:
            self._pending.pop(request.request_id, None)
            if expiry is not None:
                expiry.cancel()

        future.add_done_callback(_forget)

        try:
            self._prompt(request)
        except Exception:
            log.exception("Failed to show permission prompt for %s", tool_name)
            self._settle(request.request_id, False, DecisionSource.DISPOSED)

        return await asyncio.shield(future)

    def _expire(self, request_id: str) -> None:
        entry = self._pending.get(request_id)
        if entry is not None and not entry[1].done():
            log.info("Permission prompt for %s timed out", entry[0].tool_name)
            self._settle(request_id, False, DecisionSource.TIMEOUT)

    def resolve(self, request_id: str, allowed: bool) -> bool:
        """Apply the user's decision. Returns False for unknown or settled ids."""
        decision = self._settle(request_id, allowed, DecisionSource.USER)
        if decision is None:
            log.warning("Ignoring decision for unknown permission request %s", request_id)
            return False
        return True

    def _settle(
        self, request_id: str, allowed: bool, source: DecisionSource
    ) -> PermissionDecision | None:
        entry = self._pending.get(request_id)
        if entry is None:
            return None
        request, future = entry
        if future.done():
            return None

        decision = PermissionDecision(request_id, allowed, source)
        future.set_result(decision)
        log.info(
            "Permission %s for %s (%s)",
            "granted" if allowed else "denied",
            request.tool_name,
            source.value,
        )

        if not allowed and source is not DecisionSource.DISPOSED and self._on_denied:
            try:
                self._on_denied(request)
            except Exception:
                log.exception("Permission denial hook failed")
        return decision

    def dispose(self) -> None:
        """Deny everything still pending and refuse new requests."""
        if self._disposed:
            return
        self._disposed = True
        for request_id in list(self._pending):
            self._settle(request_id, False, DecisionSource.DISPOSED)

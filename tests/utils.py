"""Test doubles for bridges and UI surfaces."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from agentbridge.backend.protocol import BackendEvent, PermissionRequester, TurnRequest
from agentbridge.session.messages import Message, MessageType

END = object()


@dataclass
class PermissionAsk:
    """Scripted item: the agent asks to run ``tool_name``."""

    tool_name: str
    inputs: dict[str, Any] = field(default_factory=dict)


class FakeBridge:
    """Queue-fed bridge.

    Tests ``feed`` BackendEvents, PermissionAsk items, exceptions (raised
    from the stream) or END. ``interrupt`` ends the stream unless
    ``honor_interrupt`` is False.
    """

    def __init__(self, name: str = "claude", *, available: bool = True) -> None:
        self.name = name
        self.available = available
        self.honor_interrupt = True
        self.turns: list[TurnRequest] = []
        self.interrupts: list[TurnRequest] = []
        self.permission_results: list[bool] = []
        self.environment_checks = 0
        self.closed_streams = 0
        self.queue: asyncio.Queue[Any] = asyncio.Queue()
        self.turn_started = asyncio.Event()

    def feed(self, *items: Any) -> None:
        for item in items:
            self.queue.put_nowait(item)

    def reply(self, text: str, usage: dict[str, Any] | None = None) -> None:
        """Feed an assistant message (with optional usage) and end the turn."""
        raw: dict[str, Any] = {"type": "assistant", "message": {"content": text}}
        if usage is not None:
            raw["message"]["usage"] = usage
        self.feed(BackendEvent.of_message(Message(MessageType.ASSISTANT, text, raw=raw)), END)

    async def check_environment(self) -> bool:
        self.environment_checks += 1
        return self.available

    async def stream(
        self, turn: TurnRequest, permission_requester: PermissionRequester
    ) -> AsyncIterator[BackendEvent]:
        self.turns.append(turn)
        self.turn_started.set()
        try:
            while True:
                item = await self.queue.get()
                if item is END:
                    return
                if isinstance(item, PermissionAsk):
                    allowed = await permission_requester(item.tool_name, item.inputs)
                    self.permission_results.append(allowed)
                elif isinstance(item, BaseException):
                    raise item
                else:
                    yield item
        finally:
            self.closed_streams += 1
            self.turn_started.clear()

    async def interrupt(self, turn: TurnRequest) -> None:
        self.interrupts.append(turn)
        if self.honor_interrupt:
            self.queue.put_nowait(END)


class RecordingSurface:
    """UI surface that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def call(self, function_name: str, *args: str) -> None:
        self.calls.append((function_name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args_for(self, function_name: str) -> list[tuple[str, ...]]:
        return [args for name, args in self.calls if name == function_name]

    def last(self, function_name: str) -> tuple[str, ...] | None:
        matches = self.args_for(function_name)
        return matches[-1] if matches else None

    def last_json(self, function_name: str) -> Any:
        args = self.last(function_name)
        return json.loads(args[0]) if args else None

    def clear(self) -> None:
        self.calls.clear()


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)

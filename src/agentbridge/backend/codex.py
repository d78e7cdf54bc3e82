"""Bridge to the Codex agent CLI (``codex exec --json``).

Codex prints thread/turn/item events as JSON lines. Token usage arrives once
per turn on ``turn.completed``; it is forwarded as a USAGE event in the
``input_tokens``/``cache_read_input_tokens`` vocabulary the usage accountant
reads.
"""

from __future__ import annotations

import asyncio
import shutil
from typing import Any

from agentbridge.backend.process import ProcessBridge
from agentbridge.backend.protocol import BackendEvent, TurnRequest
from agentbridge.errors import BackendUnavailableError
from agentbridge.logging import get_logger
from agentbridge.session.messages import Message, MessageType

log = get_logger("backend.codex")


class CodexBridge(ProcessBridge):
    """Runs Codex turns as one ``codex exec`` process per turn."""

    name = "codex"
    uses_stdin = False

    def __init__(self, command: list[str] | None = None, interrupt_timeout: float = 5.0) -> None:
        super().__init__(interrupt_timeout=interrupt_timeout)
        self._command = list(command or ["codex", "exec", "--json"])

    async def check_environment(self) -> bool:
        executable = shutil.which(self._command[0])
        if not executable:
            log.warning("%s not found on PATH", self._command[0])
            return False
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except (OSError, asyncio.TimeoutError) as e:
            log.warning("Cannot run %s --version: %s", executable, e)
            return False
        return process.returncode == 0

    def build_command(self, turn: TurnRequest) -> list[str]:
        if not shutil.which(self._command[0]):
            raise BackendUnavailableError(self.name, self._command[0], "not found on PATH")
        command = list(self._command)
        if turn.session_id:
            command += ["resume", turn.session_id]
        command += ["--", turn.prompt]
        return command

    def parse_frame(self, frame: dict[str, Any]) -> list[BackendEvent]:
        frame_type = frame.get("type")

        if frame_type == "thread.started" and frame.get("thread_id"):
            return [BackendEvent.of_session_id(str(frame["thread_id"]))]
        if frame_type == "turn.started":
            return [BackendEvent.of_thinking(True)]
        if frame_type == "turn.completed":
            usage = frame.get("usage")
            if isinstance(usage, dict):
                return [BackendEvent.of_usage(_normalize_usage(usage))]
            return []
        if frame_type == "turn.failed":
            error = frame.get("error")
            text = error.get("message") if isinstance(error, dict) else error
            return [BackendEvent.of_error(str(text or "Turn failed"))]
        if frame_type == "error":
            return [BackendEvent.of_error(str(frame.get("message") or "Codex error"))]
        if frame_type == "item.completed":
            return self._parse_item(frame, frame.get("item") or {})
        return []

    def _parse_item(self, frame: dict[str, Any], item: dict[str, Any]) -> list[BackendEvent]:
        item_type = item.get("type")
        if item_type == "agent_message":
            raw = {"type": "assistant", "message": {"content": item.get("text", "")}, "item": item}
            return [
                BackendEvent.of_thinking(False),
                BackendEvent.of_message(
                    Message(MessageType.ASSISTANT, str(item.get("text", "")), raw=raw)
                ),
            ]
        if item_type == "reasoning":
            return [BackendEvent.of_thinking(True)]
        if item_type == "command_execution":
            text = f"$ {item.get('command', '')}\n{item.get('aggregated_output', '')}".rstrip()
            return [BackendEvent.of_message(Message(MessageType.TOOL, text, raw=frame))]
        if item_type == "error":
            text = str(item.get("message", ""))
            return [BackendEvent.of_message(Message(MessageType.ERROR, text, raw=frame))]
        return []


def _normalize_usage(usage: dict[str, Any]) -> dict[str, Any]:
    # Codex input_tokens already includes the cached part
    cached = int(usage.get("cached_input_tokens") or 0)
    total = int(usage.get("input_tokens") or 0)
    return {
        "input_tokens": max(0, total - cached),
        "cache_read_input_tokens": cached,
        "cache_creation_input_tokens": 0,
        "output_tokens": int(usage.get("output_tokens") or 0),
    }

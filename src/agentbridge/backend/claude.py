"""Bridge to the Claude agent through a Node.js bridge script.

The bridge script receives one ``query`` frame on stdin and prints the agent
SDK's messages as JSON lines. Assistant frames keep the SDK's shape in
``raw`` so ``raw["message"]["usage"]`` is available for usage accounting.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any

from agentbridge.backend.process import ProcessBridge
from agentbridge.backend.protocol import BackendEvent, TurnRequest
from agentbridge.config.paths import get_user_config_dir
from agentbridge.errors import BackendUnavailableError
from agentbridge.logging import get_logger
from agentbridge.session.messages import Message, MessageType, extract_text

log = get_logger("backend.claude")

_VERSION_TIMEOUT = 5.0


def default_bridge_script() -> Path | None:
    user_dir = get_user_config_dir()
    return user_dir / "claude-bridge" / "channel.js" if user_dir else None


class ClaudeBridge(ProcessBridge):
    """Runs Claude turns via ``node <bridge script>``."""

    name = "claude"

    def __init__(
        self,
        node_executable: str | None = None,
        script_path: str | None = None,
        interrupt_timeout: float = 5.0,
    ) -> None:
        super().__init__(interrupt_timeout=interrupt_timeout)
        self._manual_node: str | None = node_executable
        self._script_path = (
            Path(script_path).expanduser() if script_path else default_bridge_script()
        )

    # --- node resolution ---

    def set_node_executable(self, path: str | None) -> None:
        """Override node lookup; None restores PATH discovery."""
        self._manual_node = path.strip() if path and path.strip() else None

    @property
    def node_executable(self) -> str | None:
        if self._manual_node:
            return self._manual_node
        return shutil.which("node")

    async def check_environment(self) -> bool:
        node = self.node_executable
        if not node:
            log.warning("Node.js not found on PATH")
            return False
        try:
            process = await asyncio.create_subprocess_exec(
                node,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            log.warning("Cannot run %s: %s", node, e)
            return False
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=_VERSION_TIMEOUT)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log.warning("%s --version timed out", node)
            return False
        if process.returncode != 0:
            return False
        log.info("Using Node.js %s at %s", stdout.decode().strip(), node)
        return True

    # --- ProcessBridge hooks ---

    def build_command(self, turn: TurnRequest) -> list[str]:
        node = self.node_executable
        if not node:
            raise BackendUnavailableError(self.name, None, "Node.js not found")
        if self._script_path is None or not self._script_path.exists():
            raise BackendUnavailableError(
                self.name, node, f"bridge script not found: {self._script_path}"
            )
        return [node, str(self._script_path)]

    def build_input(self, turn: TurnRequest) -> dict[str, Any]:
        frame: dict[str, Any] = {"type": "query", "prompt": turn.prompt, "cwd": turn.cwd}
        if turn.session_id:
            frame["sessionId"] = turn.session_id
        if turn.model:
            frame["model"] = turn.model
        return frame

    def parse_frame(self, frame: dict[str, Any]) -> list[BackendEvent]:
        events: list[BackendEvent] = []
        session_id = frame.get("session_id")
        if isinstance(session_id, str) and session_id:
            events.append(BackendEvent.of_session_id(session_id))

        frame_type = frame.get("type")
        message = frame.get("message") if isinstance(frame.get("message"), dict) else {}

        if frame_type == "assistant":
            blocks = message.get("content")
            if _has_block(blocks, "thinking"):
                events.append(BackendEvent.of_thinking(True))
            events.append(
                BackendEvent.of_message(
                    Message(MessageType.ASSISTANT, extract_text(blocks), raw=frame)
                )
            )
        elif frame_type == "user":
            # Tool results come back to the agent as user turns
            blocks = message.get("content")
            if _has_block(blocks, "tool_result"):
                events.append(
                    BackendEvent.of_message(
                        Message(MessageType.TOOL, _tool_result_text(blocks), raw=frame)
                    )
                )
        elif frame_type == "thinking":
            events.append(BackendEvent.of_thinking(bool(frame.get("active", True))))
        elif frame_type == "result":
            if frame.get("is_error"):
                events.append(BackendEvent.of_error(str(frame.get("result") or "Turn failed")))
        elif frame_type == "error":
            events.append(BackendEvent.of_error(str(frame.get("message") or frame.get("error"))))
        elif frame_type == "system" and frame.get("subtype") not in (None, "init"):
            text = str(frame.get("message") or frame.get("subtype"))
            events.append(BackendEvent.of_message(Message(MessageType.SYSTEM, text, raw=frame)))

        return events


def _has_block(blocks: Any, block_type: str) -> bool:
    return isinstance(blocks, list) and any(
        isinstance(b, dict) and b.get("type") == block_type for b in blocks
    )


def _tool_result_text(blocks: list[Any]) -> str:
    parts = []
    for block in blocks:
        if isinstance(block, dict) and block.get("type") == "tool_result":
            parts.append(extract_text(block.get("content")))
    return "\n".join(p for p in parts if p)

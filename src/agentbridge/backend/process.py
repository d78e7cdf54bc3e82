"""Newline-delimited JSON bridge over an agent subprocess.

Each turn spawns the agent process with asyncio subprocess pipes. Frames are
read from stdout one JSON object per line. Permission requests arriving on
stdout are answered on stdin. Subclasses describe the command line and map
backend frames to BackendEvents.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import AsyncIterator
from typing import Any

from agentbridge.backend.protocol import BackendEvent, PermissionRequester, TurnRequest
from agentbridge.errors import BackendProtocolError, BackendUnavailableError
from agentbridge.logging import TRACE, get_logger

log = get_logger("backend")

# Lines longer than this are treated as a broken stream
_STREAM_LIMIT = 16 * 1024 * 1024


class ProcessBridge:
    """Base class for bridges that talk to an agent process over stdio."""

    name = "process"
    uses_stdin = True

    def __init__(self, interrupt_timeout: float = 5.0) -> None:
        self._interrupt_timeout = interrupt_timeout
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._interrupted: set[str] = set()

    # --- subclass hooks ---

    def build_command(self, turn: TurnRequest) -> list[str]:
        raise NotImplementedError

    def build_input(self, turn: TurnRequest) -> dict[str, Any] | None:
        """First frame written to stdin, if any."""
        return None

    def parse_frame(self, frame: dict[str, Any]) -> list[BackendEvent]:
        raise NotImplementedError

    def build_env(self) -> dict[str, str]:
        return os.environ.copy()

    # --- turn lifecycle ---

    @property
    def active_turns(self) -> int:
        return len(self._processes)

    async def stream(
        self, turn: TurnRequest, permission_requester: PermissionRequester
    ) -> AsyncIterator[BackendEvent]:
        command = self.build_command(turn)
        log.debug("Starting %s turn %s: %s", self.name, turn.turn_id, command[0])

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if self.uses_stdin else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=turn.cwd,
                env=self.build_env(),
                limit=_STREAM_LIMIT,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BackendUnavailableError(self.name, command[0], str(e)) from e

        self._processes[turn.turn_id] = process
        stderr_task = asyncio.create_task(self._drain_stderr(process))
        try:
            initial = self.build_input(turn)
            if initial is not None:
                await self._write_frame(process, initial)

            async for frame in self._read_frames(process):
                if frame.get("type") == "permission_request":
                    await self._answer_permission(process, frame, permission_requester)
                    continue
                for event in self.parse_frame(frame):
                    yield event

            returncode = await process.wait()
            stderr_text = await stderr_task
            if returncode != 0 and turn.turn_id not in self._interrupted:
                detail = stderr_text.strip().splitlines()[-1] if stderr_text.strip() else ""
                raise BackendProtocolError(
                    f"{self.name} process exited with code {returncode}"
                    + (f": {detail}" if detail else "")
                )
        finally:
            self._processes.pop(turn.turn_id, None)
            self._interrupted.discard(turn.turn_id)
            if process.returncode is None:
                process.kill()
                await process.wait()
            if not stderr_task.done():
                stderr_task.cancel()

    async def interrupt(self, turn: TurnRequest) -> None:
        process = self._processes.get(turn.turn_id)
        if process is None or process.returncode is not None:
            return

        self._interrupted.add(turn.turn_id)
        log.info("Interrupting %s turn %s", self.name, turn.turn_id)

        if self.uses_stdin:
            try:
                await self._write_frame(process, {"type": "interrupt"})
            except (BrokenPipeError, ConnectionResetError):
                log.debug("Process stdin already closed for turn %s", turn.turn_id)

        try:
            await asyncio.wait_for(process.wait(), timeout=self._interrupt_timeout)
            return
        except asyncio.TimeoutError:
            log.warning("%s turn %s ignored interrupt, terminating", self.name, turn.turn_id)

        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=self._interrupt_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()

    # --- I/O helpers ---

    async def _read_frames(
        self, process: asyncio.subprocess.Process
    ) -> AsyncIterator[dict[str, Any]]:
        assert process.stdout is not None
        while True:
            try:
                line = await process.stdout.readline()
            except ValueError as e:
                raise BackendProtocolError(f"{self.name} emitted an oversized frame") from e
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            try:
                frame = json.loads(text)
            except json.JSONDecodeError:
                # Agent runtimes print plain log lines between frames
                log.log(TRACE, "%s: %s", self.name, text)
                continue
            if isinstance(frame, dict):
                yield frame

    async def _write_frame(
        self, process: asyncio.subprocess.Process, frame: dict[str, Any]
    ) -> None:
        if process.stdin is None:
            return
        data = json.dumps(frame, separators=(",", ":"))
        process.stdin.write(f"{data}\n".encode())
        await process.stdin.drain()

    async def _answer_permission(
        self,
        process: asyncio.subprocess.Process,
        frame: dict[str, Any],
        permission_requester: PermissionRequester,
    ) -> None:
        tool_name = str(frame.get("tool_name") or frame.get("toolName") or "")
        inputs = frame.get("input") or frame.get("inputs") or {}
        if not isinstance(inputs, dict):
            inputs = {"value": inputs}

        allowed = await permission_requester(tool_name, inputs)
        try:
            await self._write_frame(
                process,
                {"type": "permission_response", "id": frame.get("id"), "allow": allowed},
            )
        except (BrokenPipeError, ConnectionResetError):
            log.debug("Process exited before permission response for %s", tool_name)

    async def _drain_stderr(self, process: asyncio.subprocess.Process) -> str:
        if process.stderr is None:
            return ""
        data = await process.stderr.read()
        return data.decode("utf-8", errors="replace")

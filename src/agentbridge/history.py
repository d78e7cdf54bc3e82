"""Persisted conversation history.

Claude stores each conversation as JSON lines under
``<claude_dir>/projects/<slug>/<session_id>.jsonl`` where the slug is the
project path with every non-alphanumeric character replaced by a dash. This module lists those
transcripts and turns them back into Messages.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from agentbridge.errors import HistoryLoadError
from agentbridge.logging import get_logger
from agentbridge.session.messages import Message, MessageType, extract_text

log = get_logger("history")

DEFAULT_CLAUDE_DIR = Path.home() / ".claude"

_TITLE_LENGTH = 80

_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9]")


def get_claude_dir() -> Path:
    """Claude data dir. Honors CLAUDE_DATA_DIR, defaults to ~/.claude/."""
    env = os.environ.get("CLAUDE_DATA_DIR")
    if env:
        return Path(env)
    return DEFAULT_CLAUDE_DIR


def project_path_to_slug(project_path: str) -> str:
    """Convert '/home/u/my_proj.v2' to '-home-u-my-proj-v2'."""
    return _SLUG_UNSAFE.sub("-", project_path)


def get_project_history_dir(project_path: str) -> Path:
    return get_claude_dir() / "projects" / project_path_to_slug(project_path)


def get_session_jsonl_path(project_path: str, session_id: str) -> Path:
    return get_project_history_dir(project_path) / f"{session_id}.jsonl"


@dataclass
class SessionSummary:
    """Lightweight listing entry for a stored conversation."""

    session_id: str
    title: str
    updated_at: datetime
    message_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "title": self.title,
            "updatedAt": self.updated_at.isoformat(),
            "messageCount": self.message_count,
        }


def _parse_timestamp(value: Any) -> float | None:
    if isinstance(value, (int, float)):
        return float(value) / 1000 if value > 1e11 else float(value)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return None
    return None


def entry_to_message(entry: dict[str, Any]) -> Message | None:
    """Map one transcript line to a Message, or None for bookkeeping lines."""
    entry_type = entry.get("type")
    if entry_type not in ("user", "assistant") or entry.get("isMeta"):
        return None

    payload = entry.get("message")
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")

    if entry_type == "assistant":
        msg_type = MessageType.ASSISTANT
        text = extract_text(content)
    elif isinstance(content, list) and any(
        isinstance(b, dict) and b.get("type") == "tool_result" for b in content
    ):
        msg_type = MessageType.TOOL
        text = "\n".join(
            extract_text(b.get("content"))
            for b in content
            if isinstance(b, dict) and b.get("type") == "tool_result"
        )
    else:
        msg_type = MessageType.USER
        text = extract_text(content)

    message = Message(msg_type, text, raw=entry)
    timestamp = _parse_timestamp(entry.get("timestamp"))
    if timestamp is not None:
        message.timestamp = timestamp
    return message


def read_transcript(path: Path) -> list[Message]:
    """Read a transcript file. Corrupt lines are skipped."""
    messages: list[Message] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                log.debug("Skipping malformed line %d in %s", line_no, path)
                continue
            if not isinstance(entry, dict):
                continue
            message = entry_to_message(entry)
            if message is not None:
                messages.append(message)
    return messages


def _summarize(path: Path) -> SessionSummary:
    messages = read_transcript(path)
    title = next(
        (m.content for m in messages if m.type is MessageType.USER and m.content.strip()),
        "",
    )
    title = " ".join(title.split())
    if len(title) > _TITLE_LENGTH:
        title = title[: _TITLE_LENGTH - 3] + "..."
    return SessionSummary(
        session_id=path.stem,
        title=title or "(empty)",
        updated_at=datetime.fromtimestamp(path.stat().st_mtime),
        message_count=len(messages),
    )


class HistoryLoader:
    """Loads stored conversations for a project.

    File reads run in a worker thread; results are returned to the caller's
    event loop.
    """

    async def load(self, session_id: str, cwd: str) -> list[Message]:
        path = get_session_jsonl_path(cwd, session_id)
        try:
            return await asyncio.to_thread(read_transcript, path)
        except FileNotFoundError as e:
            raise HistoryLoadError(f"No stored conversation {session_id} for {cwd}") from e
        except OSError as e:
            raise HistoryLoadError(f"Cannot read {path}: {e}") from e

    async def list_sessions(self, cwd: str) -> list[SessionSummary]:
        return await asyncio.to_thread(self.list_sessions_sync, cwd)

    def list_sessions_sync(self, cwd: str) -> list[SessionSummary]:
        directory = get_project_history_dir(cwd)
        if not directory.is_dir():
            return []
        summaries = []
        for path in directory.glob("*.jsonl"):
            try:
                summaries.append(_summarize(path))
            except OSError as e:
                log.warning("Cannot read %s: %s", path, e)
        summaries.sort(key=lambda s: s.updated_at, reverse=True)
        return summaries

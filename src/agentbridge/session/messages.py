"""Conversation message model shared by sessions, bridges and the UI."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageType(Enum):
    """Closed set of message kinds shown in the conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"
    ERROR = "error"


@dataclass(slots=True)
class Message:
    """A single entry in a session's history.

    ``raw`` holds the backend's native JSON for the entry. Its shape depends on
    the backend and only the usage accountant looks inside it.
    """

    type: MessageType
    content: str = ""
    raw: dict[str, Any] | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "timestamp": int(self.timestamp * 1000),
            "content": self.content or "",
        }
        if self.raw is not None:
            data["raw"] = self.raw
        return data


def extract_text(content: Any) -> str:
    """Flatten a backend content field (string or block list) to display text.

    Only ``text`` blocks contribute; tool and image blocks are skipped.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "\n".join(p for p in parts if p)
    return str(content)

"""Context-window usage derived from the latest assistant reply."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agentbridge.config.schema import DEFAULT_CONTEXT_LIMIT
from agentbridge.session.messages import Message, MessageType

_COUNTED_FIELDS = (
    "input_tokens",
    "cache_creation_input_tokens",
    "cache_read_input_tokens",
)


class UsageSnapshot(BaseModel):
    """Tokens in use against the model's context window."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    used_tokens: int = Field(default=0, alias="usedTokens")
    max_tokens: int = Field(default=DEFAULT_CONTEXT_LIMIT, alias="maxTokens")
    percentage: int = 0

    def to_payload(self) -> dict[str, Any]:
        """UI payload; ``totalTokens``/``limit`` mirror the primary fields."""
        payload = self.model_dump(by_alias=True)
        payload["totalTokens"] = self.used_tokens
        payload["limit"] = self.max_tokens
        return payload


def context_limit(model: str | None, limits: Mapping[str, int] | None = None) -> int:
    if model is None or not limits:
        return DEFAULT_CONTEXT_LIMIT
    return limits.get(model, DEFAULT_CONTEXT_LIMIT)


def find_latest_usage(messages: Sequence[Message]) -> dict[str, Any] | None:
    """Usage block of the newest assistant message that has one."""
    for message in reversed(messages):
        if message.type is not MessageType.ASSISTANT or not message.raw:
            continue
        inner = message.raw.get("message")
        if isinstance(inner, dict) and isinstance(inner.get("usage"), dict):
            return inner["usage"]
    return None


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def compute_usage(
    messages: Iterable[Message],
    model: str | None = None,
    limits: Mapping[str, int] | None = None,
) -> UsageSnapshot:
    usage = find_latest_usage(list(messages)) or {}
    used = sum(_as_int(usage.get(name)) for name in _COUNTED_FIELDS)
    limit = context_limit(model, limits)
    # Halves round up
    percentage = min(100, (used * 200 + limit) // (2 * limit)) if limit > 0 else 0
    return UsageSnapshot(used_tokens=used, max_tokens=limit, percentage=percentage)


def empty_usage(model: str | None = None, limits: Mapping[str, int] | None = None) -> UsageSnapshot:
    return UsageSnapshot(used_tokens=0, max_tokens=context_limit(model, limits), percentage=0)

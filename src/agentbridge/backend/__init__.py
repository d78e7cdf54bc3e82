"""Backend agent bridges."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentbridge.backend.claude import ClaudeBridge
from agentbridge.backend.codex import CodexBridge
from agentbridge.backend.process import ProcessBridge
from agentbridge.backend.protocol import (
    BackendBridge,
    BackendEvent,
    BackendEventKind,
    PermissionRequester,
    TurnRequest,
)

if TYPE_CHECKING:
    from agentbridge.config.schema import BackendConfig


def create_bridges(config: BackendConfig) -> dict[str, BackendBridge]:
    """Build one bridge per supported backend from config."""
    return {
        "claude": ClaudeBridge(
            node_executable=config.node_path,
            script_path=config.claude_script,
            interrupt_timeout=config.interrupt_timeout,
        ),
        "codex": CodexBridge(
            command=config.codex_command,
            interrupt_timeout=config.interrupt_timeout,
        ),
    }


__all__ = [
    "BackendBridge",
    "BackendEvent",
    "BackendEventKind",
    "ClaudeBridge",
    "CodexBridge",
    "PermissionRequester",
    "ProcessBridge",
    "TurnRequest",
    "create_bridges",
]

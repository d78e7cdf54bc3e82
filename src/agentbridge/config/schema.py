"""Configuration schema dataclasses for agentbridge.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_CONTEXT_LIMIT = 200_000

# Context window per model id; unknown ids fall back to DEFAULT_CONTEXT_LIMIT
DEFAULT_MODEL_LIMITS: dict[str, int] = {
    "claude-sonnet-4-5": 200_000,
    "claude-opus-4-5-20251101": 200_000,
}


@dataclass
class BackendConfig:
    """Backend agent process configuration.

    Example config.yaml:
        backend:
          default: claude
          node_path: /usr/local/bin/node
          claude_script: ~/.agentbridge/claude-bridge/channel.js
          codex_command: [codex, exec, --json]
          interrupt_timeout: 5.0
    """

    default: str = "claude"  # "claude" or "codex"
    node_path: str | None = None  # Overrides PATH lookup for node
    claude_script: str | None = None  # Node bridge script for the Claude agent
    codex_command: list[str] = field(default_factory=lambda: ["codex", "exec", "--json"])
    interrupt_timeout: float = 5.0  # Seconds to wait for a turn to stop


@dataclass
class UsageConfig:
    """Token usage accounting configuration."""

    model: str = "claude-sonnet-4-5"
    model_limits: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MODEL_LIMITS))


@dataclass
class PermissionsConfig:
    """Tool permission prompt configuration."""

    timeout: float | None = None  # Seconds before an unanswered prompt is denied


@dataclass
class ServerConfig:
    """UI server configuration."""

    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, takes precedence over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)
    permissions: PermissionsConfig = field(default_factory=PermissionsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)

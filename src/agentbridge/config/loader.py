"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Cascading merge of system, user and project files
- Environment variable overrides
- Conversion from dict to the typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from agentbridge.config.paths import get_config_paths
from agentbridge.config.schema import (
    DEFAULT_MODEL_LIMITS,
    BackendConfig,
    Config,
    LoggingConfig,
    PermissionsConfig,
    ServerConfig,
    UsageConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("agentbridge.config")

_cached_config: Config | None = None

_KNOWN_SECTIONS = {"backend", "usage", "permissions", "server", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge config layers, later layers winning.

    Sections (nested dicts) merge key by key. Lists and scalars are replaced
    as a whole. A None value never clears a lower layer.
    """
    result: dict[str, Any] = {}
    for layer in layers:
        for key, value in (layer or {}).items():
            if value is None:
                continue
            current = result.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                result[key] = merge_layers(current, value)
            else:
                result[key] = value
    return result


def env_overrides() -> dict[str, Any]:
    """Build a config layer from environment variables."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("AGENTBRIDGE_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    node_path = os.environ.get("AGENTBRIDGE_NODE")
    if node_path:
        overrides.setdefault("backend", {})["node_path"] = node_path

    backend = os.environ.get("AGENTBRIDGE_BACKEND")
    if backend:
        overrides.setdefault("backend", {})["default"] = backend

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    backend_data = _section(data, "backend")
    codex_command = backend_data.get("codex_command")
    backend = BackendConfig(
        default=backend_data.get("default", "claude"),
        node_path=backend_data.get("node_path"),
        claude_script=backend_data.get("claude_script"),
        interrupt_timeout=float(backend_data.get("interrupt_timeout", 5.0)),
    )
    if isinstance(codex_command, list) and codex_command:
        backend.codex_command = [str(part) for part in codex_command]

    usage_data = _section(data, "usage")
    limits = dict(DEFAULT_MODEL_LIMITS)
    for model_id, limit in _section(usage_data, "model_limits").items():
        try:
            limits[str(model_id)] = int(limit)
        except (TypeError, ValueError):
            _log.warning("Ignoring non-integer context limit for %s: %r", model_id, limit)
    usage = UsageConfig(
        model=usage_data.get("model", UsageConfig().model),
        model_limits=limits,
    )

    perms_data = _section(data, "permissions")
    timeout = perms_data.get("timeout")
    permissions = PermissionsConfig(timeout=float(timeout) if timeout is not None else None)

    server_data = _section(data, "server")
    server = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=int(server_data.get("port", 8765)),
    )

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        backend=backend,
        usage=usage,
        permissions=permissions,
        server=server,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config (<project>/.agentbridge/config.yaml)
    3. User config
    4. System config

    Only the global config (no project_root) is cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    layers: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        data = load_yaml_file(path)
        if data:
            _log.debug("Loaded config from %s", path)
            layers.append(data)

    env_layer = env_overrides()
    if env_layer:
        layers.append(env_layer)

    config = dict_to_config(merge_layers(*layers))

    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config (used by tests)."""
    global _cached_config
    _cached_config = None

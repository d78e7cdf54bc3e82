"""Persisted user settings.

A small YAML document in the user config directory holding:
- ``values``: string key-value pairs (e.g. the manual Node.js path)
- ``providers``: API provider profiles, each with an ``env`` mapping
- ``active_provider``: id of the provider applied to the Claude CLI

Applying the active provider merges its ``env`` into Claude's
``settings.json`` so the agent process picks up the credentials.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from agentbridge.config.paths import get_settings_path
from agentbridge.history import get_claude_dir
from agentbridge.logging import get_logger

log = get_logger("settings")

NODE_PATH_KEY = "agentbridge.node.path"


class SettingsStore:
    """Read-modify-write access to the settings file.

    Args:
        path: Settings YAML file; defaults to the user config dir.
        claude_settings_path: Claude CLI settings.json; defaults to
            ``<claude_dir>/settings.json``.
    """

    def __init__(
        self,
        path: Path | None = None,
        claude_settings_path: Path | None = None,
    ) -> None:
        self._path = path or get_settings_path()
        self._claude_settings_path = claude_settings_path or (get_claude_dir() / "settings.json")
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        data: dict[str, Any] = {}
        if self._path is not None and self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
                if isinstance(loaded, dict):
                    data = loaded
            except (yaml.YAMLError, OSError) as e:
                log.warning("Cannot read settings from %s: %s", self._path, e)
        data.setdefault("values", {})
        data.setdefault("providers", [])
        self._data = data
        return data

    def _save(self) -> None:
        if self._path is None or self._data is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._data, f, default_flow_style=False, sort_keys=False)

    # --- key-value ---

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._load()["values"].get(key)
        return str(value) if value is not None else default

    def set(self, key: str, value: str) -> None:
        self._load()["values"][key] = value
        self._save()

    def unset(self, key: str) -> None:
        values = self._load()["values"]
        if key in values:
            del values[key]
            self._save()

    # --- providers ---

    def list_providers(self) -> list[dict[str, Any]]:
        active = self._load().get("active_provider")
        providers = []
        for provider in self._load()["providers"]:
            if isinstance(provider, dict) and provider.get("id"):
                providers.append({**provider, "active": provider["id"] == active})
        return providers

    def add_provider(self, provider_id: str, name: str, env: dict[str, str]) -> None:
        providers = [
            p for p in self._load()["providers"]
            if not (isinstance(p, dict) and p.get("id") == provider_id)
        ]
        providers.append({"id": provider_id, "name": name, "env": dict(env)})
        self._load()["providers"] = providers
        self._save()

    def set_active_provider(self, provider_id: str) -> None:
        if not any(p["id"] == provider_id for p in self.list_providers()):
            raise KeyError(f"Unknown provider: {provider_id}")
        self._load()["active_provider"] = provider_id
        self._save()

    def active_provider(self) -> dict[str, Any] | None:
        return next((p for p in self.list_providers() if p["active"]), None)

    def apply_active_provider_to_claude_settings(self) -> bool:
        """Write the active provider's env into Claude's settings.json.

        Returns False when no provider is active.
        """
        provider = self.active_provider()
        if provider is None:
            return False

        settings: dict[str, Any] = {}
        if self._claude_settings_path.exists():
            with open(self._claude_settings_path, encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                settings = loaded

        env = settings.get("env") if isinstance(settings.get("env"), dict) else {}
        env.update({str(k): str(v) for k, v in (provider.get("env") or {}).items()})
        settings["env"] = env

        self._claude_settings_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._claude_settings_path, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2)
        log.info("Applied provider %s to %s", provider["id"], self._claude_settings_path)
        return True

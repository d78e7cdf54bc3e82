"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from agentbridge.config import (
    Config,
    dict_to_config,
    get_config,
    load_config,
    merge_layers,
    reset_config,
)
from agentbridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_settings_path,
    get_user_config_path,
)


@pytest.fixture(autouse=True)
def no_system_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("agentbridge.config.paths.get_system_config_path", lambda: None)


def write_yaml(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestMergeLayers:
    """Test the layer merge algorithm."""

    def test_simple_override(self) -> None:
        assert merge_layers({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_sections_merge(self) -> None:
        result = merge_layers(
            {"backend": {"default": "claude", "interrupt_timeout": 5}},
            {"backend": {"interrupt_timeout": 1}},
        )
        assert result == {"backend": {"default": "claude", "interrupt_timeout": 1}}

    def test_none_does_not_override(self) -> None:
        assert merge_layers({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        result = merge_layers(
            {"backend": {"codex_command": ["codex", "exec"]}},
            {"backend": {"codex_command": ["my-codex"]}},
        )
        assert result["backend"]["codex_command"] == ["my-codex"]

    def test_inputs_not_mutated(self) -> None:
        base = {"backend": {"default": "claude"}}
        merge_layers(base, {"backend": {"default": "codex"}})
        assert base == {"backend": {"default": "claude"}}


class TestDictToConfig:
    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert config.backend.default == "claude"
        assert config.backend.codex_command == ["codex", "exec", "--json"]
        assert config.backend.interrupt_timeout == 5.0
        assert config.usage.model_limits["claude-sonnet-4-5"] == 200_000
        assert config.permissions.timeout is None
        assert config.server.port == 8765

    def test_sections_parsed(self) -> None:
        config = dict_to_config(
            {
                "backend": {"default": "codex", "node_path": "/bin/node", "interrupt_timeout": "2"},
                "usage": {"model": "m", "model_limits": {"m": "1000", "bad": "x"}},
                "permissions": {"timeout": 30},
                "server": {"host": "0.0.0.0", "port": "9000"},
                "logging": {"level": "DEBUG", "file": "/tmp/ab.log"},
                "custom": {"anything": True},
            }
        )
        assert config.backend.default == "codex"
        assert config.backend.node_path == "/bin/node"
        assert config.backend.interrupt_timeout == 2.0
        assert config.usage.model == "m"
        assert config.usage.model_limits["m"] == 1000
        assert "bad" not in config.usage.model_limits
        assert config.permissions.timeout == 30.0
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9000
        assert config.logging.level == "DEBUG"
        assert config.extra == {"custom": {"anything": True}}


class TestPaths:
    def test_user_paths_follow_xdg(self, tmp_path: Path) -> None:
        if sys.platform == "win32":
            pytest.skip("XDG paths are Unix-only")
        assert get_user_config_path() == tmp_path / "xdg" / "agentbridge" / "config.yaml"
        assert get_settings_path() == tmp_path / "xdg" / "agentbridge" / "settings.yaml"

    def test_project_path(self, tmp_path: Path) -> None:
        assert get_project_config_path(str(tmp_path)) == tmp_path / ".agentbridge" / "config.yaml"

    def test_merge_order(self, tmp_path: Path) -> None:
        paths = get_config_paths(str(tmp_path / "proj"))
        assert paths[-1] == get_project_config_path(str(tmp_path / "proj"))
        assert paths[0] == get_user_config_path()


class TestLoadConfig:
    def test_no_files_gives_defaults(self) -> None:
        assert load_config() == Config()

    def test_project_overrides_user(self, tmp_path: Path) -> None:
        write_yaml(
            tmp_path / "xdg" / "agentbridge" / "config.yaml",
            "backend:\n  default: codex\n  interrupt_timeout: 3\n",
        )
        project = tmp_path / "proj"
        write_yaml(project / ".agentbridge" / "config.yaml", "backend:\n  interrupt_timeout: 1\n")

        config = load_config(str(project))
        assert config.backend.default == "codex"
        assert config.backend.interrupt_timeout == 1.0

    def test_env_overrides_files(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_yaml(tmp_path / "xdg" / "agentbridge" / "config.yaml", "backend:\n  default: codex\n")
        monkeypatch.setenv("AGENTBRIDGE_BACKEND", "claude")
        monkeypatch.setenv("AGENTBRIDGE_NODE", "/custom/node")
        monkeypatch.setenv("AGENTBRIDGE_LOG", "/tmp/agentbridge.log")

        config = load_config()
        assert config.backend.default == "claude"
        assert config.backend.node_path == "/custom/node"
        assert config.logging.file == "/tmp/agentbridge.log"

    def test_invalid_yaml_ignored(self, tmp_path: Path) -> None:
        write_yaml(tmp_path / "xdg" / "agentbridge" / "config.yaml", "backend: [unclosed\n")
        assert load_config() == Config()

    def test_global_config_cached(self, tmp_path: Path) -> None:
        first = get_config()
        write_yaml(tmp_path / "xdg" / "agentbridge" / "config.yaml", "server:\n  port: 1234\n")
        assert get_config() is first
        assert load_config(reload=True).server.port == 1234
        reset_config()
        assert get_config().server.port == 1234

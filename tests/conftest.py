"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentbridge.config import Config, reset_config
from agentbridge.config.schema import BackendConfig
from agentbridge.history import HistoryLoader
from agentbridge.settings import SettingsStore
from tests.utils import FakeBridge, RecordingSurface

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from real user config and Claude data."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("CLAUDE_DATA_DIR", str(tmp_path / "claude"))
    for name in ("AGENTBRIDGE_LOG", "AGENTBRIDGE_NODE", "AGENTBRIDGE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> Config:
    return Config(backend=BackendConfig(interrupt_timeout=0.2))


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge("claude")


@pytest.fixture
def bridges(bridge: FakeBridge) -> dict[str, FakeBridge]:
    return {"claude": bridge, "codex": FakeBridge("codex")}


@pytest.fixture
def settings(tmp_path: Path) -> SettingsStore:
    return SettingsStore(
        path=tmp_path / "settings.yaml",
        claude_settings_path=tmp_path / "claude" / "settings.json",
    )


@pytest.fixture
def history() -> HistoryLoader:
    return HistoryLoader()


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path

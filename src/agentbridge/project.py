"""Project identity for per-project windows."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agentbridge.logging import get_logger

log = get_logger("project")


@dataclass(frozen=True, slots=True)
class Project:
    """A project root. ``key`` identifies its window in the registry."""

    root: str
    name: str

    @classmethod
    def from_path(cls, path: str) -> Project:
        resolved = Path(path).expanduser().resolve()
        return cls(root=str(resolved), name=resolved.name or str(resolved))

    @property
    def key(self) -> str:
        return self.root

    def working_directory(self, preferred: str | None = None) -> str:
        """First existing directory of ``preferred``, the root, then home."""
        for candidate in (preferred, self.root):
            if candidate and Path(candidate).is_dir():
                return candidate
        home = str(Path.home())
        log.warning("Project root %s missing; using home directory %s", self.root, home)
        return home

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

PREVIEW_PORT = 3000
DEBOUNCE_MS = 150


@dataclass(frozen=True)
class Layout:
    """Source and output directories of a template project."""

    root: Path

    @classmethod
    def cwd(cls) -> "Layout":
        return cls(Path.cwd().resolve())

    @property
    def src_dir(self) -> Path:
        return self.root / "src"

    @property
    def templates_dir(self) -> Path:
        return self.src_dir / "templates"

    @property
    def dist_dir(self) -> Path:
        return self.root / "dist"


@dataclass(frozen=True)
class DevConfig:
    port: int = PREVIEW_PORT
    debounce_ms: int = DEBOUNCE_MS

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000

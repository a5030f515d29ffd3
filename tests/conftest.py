"""
Shared test fixtures.
"""

from pathlib import Path

import pytest

from tmplbuild.config import Layout


@pytest.fixture
def project_root() -> Path:
    """Return the repository root."""
    return Path(__file__).parent.parent


@pytest.fixture
def layout(tmp_path: Path) -> Layout:
    """A template project with an empty src/templates directory."""
    project = Layout(tmp_path / "site")
    project.templates_dir.mkdir(parents=True)
    return project


@pytest.fixture
def write_file():
    """Write a text file, creating parent directories."""

    def write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return write

from __future__ import annotations

from pathlib import Path


class TmplbuildError(Exception):
    """Base class for build and watch errors."""


class TemplateError(TmplbuildError):
    """A template failed to render."""

    def __init__(self, template_id: str, message: str):
        super().__init__(f"{template_id}: {message}")
        self.template_id = template_id


class FilesystemError(TmplbuildError):
    """Template discovery or output writing failed."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class ProcessSpawnError(TmplbuildError):
    """The build child process could not be started."""

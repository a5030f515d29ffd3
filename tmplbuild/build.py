"""Full build: render every template under src/templates into dist/."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .config import Layout
from .errors import FilesystemError, TemplateError
from .log import setup_logging
from .render import get_template_env, render_template

logger = logging.getLogger(__name__)

TEMPLATE_EXTENSIONS = (".html",)

EXIT_OK = 0
EXIT_TEMPLATE_ERROR = 1
EXIT_FILESYSTEM_ERROR = 2


@dataclass(frozen=True)
class TemplateUnit:
    template_id: str
    rel: Path


@dataclass(frozen=True)
class BuildResult:
    ok: bool
    exit_code: int
    outputs: tuple[Path, ...] = ()


def is_template(path: Path) -> bool:
    return path.suffix.lower() in TEMPLATE_EXTENSIONS


def discover_templates(layout: Layout) -> list[TemplateUnit]:
    """Find template files, sorted by their path under templates/."""
    templates_dir = layout.templates_dir
    if not templates_dir.is_dir():
        raise FilesystemError(templates_dir, "templates directory not found")

    try:
        paths = sorted(templates_dir.rglob("*"))
    except OSError as exc:
        raise FilesystemError(templates_dir, str(exc)) from exc

    units = []
    for path in paths:
        if not path.is_file() or not is_template(path):
            continue
        units.append(
            TemplateUnit(
                template_id=path.relative_to(layout.src_dir).as_posix(),
                rel=path.relative_to(templates_dir),
            )
        )
    return units


def ensure_output_dir(layout: Layout):
    try:
        layout.dist_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(layout.dist_dir, str(exc)) from exc


def write_output(layout: Layout, unit: TemplateUnit, rendered: str) -> Path:
    """Write rendered text to dist/, mirroring the template's sub-path."""
    output = layout.dist_dir / unit.rel
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(output, str(exc)) from exc
    return output


def display_path(layout: Layout, path: Path) -> str:
    try:
        return path.relative_to(layout.root).as_posix()
    except ValueError:
        return str(path)


def run_build_pass(layout: Layout) -> BuildResult:
    """Render all templates, stopping at the first failure."""
    outputs: list[Path] = []
    try:
        ensure_output_dir(layout)
        units = discover_templates(layout)
        env = get_template_env(layout.src_dir)
        for unit in units:
            rendered = render_template(env, unit.template_id)
            output = write_output(layout, unit, rendered)
            outputs.append(output)
            logger.info(
                "Rendered %s -> %s", unit.template_id, display_path(layout, output)
            )
    except TemplateError as exc:
        logger.error("Template error: %s", exc)
        return BuildResult(False, EXIT_TEMPLATE_ERROR, tuple(outputs))
    except FilesystemError as exc:
        logger.error("Filesystem error: %s", exc)
        return BuildResult(False, EXIT_FILESYSTEM_ERROR, tuple(outputs))

    if not units:
        logger.warning(
            "No templates found in %s", display_path(layout, layout.templates_dir)
        )
    return BuildResult(True, EXIT_OK, tuple(outputs))


def main():
    setup_logging()
    result = run_build_pass(Layout.cwd())
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()

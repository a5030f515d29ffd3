from __future__ import annotations

from pathlib import Path

import jinja2

from .errors import FilesystemError, TemplateError


def get_template_env(src_root: Path) -> jinja2.Environment:
    """Create a Jinja environment that resolves templates from src_root."""
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(src_root),
        # Templates are emitted as raw HTML.
        autoescape=False,
        keep_trailing_newline=True,
    )


def describe_error(exc: jinja2.TemplateError) -> str:
    """Format a Jinja error with its location when one is known."""
    if isinstance(exc, jinja2.TemplateSyntaxError):
        where = exc.filename or exc.name or "<unknown>"
        return f"{exc.message} ({where}:{exc.lineno})"
    if isinstance(exc, jinja2.TemplateNotFound):
        return f"template not found: {exc.name}"
    return exc.message or exc.__class__.__name__


def render_template(env: jinja2.Environment, template_id: str) -> str:
    """Render template_id, raising TemplateError with the id on failure."""
    try:
        return env.get_template(template_id).render()
    except jinja2.TemplateError as exc:
        raise TemplateError(template_id, describe_error(exc)) from exc
    except UnicodeDecodeError as exc:
        raise TemplateError(template_id, f"not valid UTF-8: {exc.reason}") from exc
    except OSError as exc:
        raise FilesystemError(Path(exc.filename or template_id), str(exc)) from exc

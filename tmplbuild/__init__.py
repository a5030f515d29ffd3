"""Render a directory of Jinja templates, with a live-reload watch loop."""

__version__ = "0.1.0"

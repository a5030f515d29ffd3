"""Console logging shared by the build and watch entry points.

Both processes log to the same terminal (the build child inherits the
watcher's stdio), so they use one format: a rich time column and the
message, no module paths.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_NOISY_LOGGERS = ("watchdog", "aiohttp.access", "asyncio")


def setup_logging(level: str = "INFO") -> None:
    """Install a RichHandler on the root logger."""
    handler = RichHandler(show_path=False, log_time_format="[%X]")
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

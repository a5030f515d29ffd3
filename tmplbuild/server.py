"""Preview server for dist/ with a Server-Sent Events reload channel."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from aiohttp import web

from .broadcast import Broadcaster
from .config import Layout

logger = logging.getLogger(__name__)

RELOAD_PATH = "/__reload"

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".txt": "text/plain; charset=utf-8",
}
DEFAULT_MIME = "application/octet-stream"

RELOAD_SNIPPET = f"""<script>
  (() => {{
    const es = new EventSource('{RELOAD_PATH}');
    es.onmessage = (e) => {{ if (e.data === 'reload') location.reload(); }};
    es.onerror = () => {{ es.close(); setTimeout(() => location.reload(), 500); }};
  }})();
</script>"""

PLACEHOLDER_HTML = """<!doctype html>
<title>tmplbuild</title>
<p>No templates have been built yet. This page reloads after the next successful build.</p>"""

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}

LAYOUT_KEY = web.AppKey("layout", Layout)
BROADCASTER_KEY = web.AppKey("broadcaster", Broadcaster)
POLL_INTERVAL_KEY = web.AppKey("poll_interval", float)
STOPPING_KEY = web.AppKey("stopping", asyncio.Event)


def inject_reload_snippet(html: str) -> str:
    return f"{html}\n{RELOAD_SNIPPET}"


def default_entry(out_root: Path) -> str | None:
    """Return the first top-level HTML file name in out_root, if any."""
    try:
        names = sorted(
            path.name
            for path in out_root.iterdir()
            if path.is_file() and path.suffix.lower() == ".html"
        )
    except OSError:
        return None
    return names[0] if names else None


def entry_url(layout: Layout, port: int) -> str:
    entry = default_entry(layout.dist_dir) or "[your-file].html"
    return f"http://localhost:{port}/{entry}"


def resolve_request_path(out_root: Path, url_path: str) -> Path | None:
    """Map a URL path to a file under out_root.

    Returns None when the resolved path (symlinks followed) is not inside
    out_root. Paths that cannot be resolved at all raise ValueError,
    OSError or RuntimeError.
    """
    root = out_root.resolve()
    candidate = (root / url_path.lstrip("/")).resolve()
    if not candidate.is_relative_to(root):
        return None
    return candidate


def _connection_closed(request: web.Request) -> bool:
    transport = request.transport
    return transport is None or transport.is_closing()


async def reload_stream(request: web.Request) -> web.StreamResponse:
    broadcaster = request.app[BROADCASTER_KEY]
    stopping = request.app[STOPPING_KEY]
    poll_interval = request.app[POLL_INTERVAL_KEY]

    response = web.StreamResponse(headers=SSE_HEADERS)
    await response.prepare(request)
    await response.write(b"\n")

    broadcaster.subscribe(response)
    try:
        while not stopping.is_set() and not _connection_closed(request):
            await asyncio.sleep(poll_interval)
    finally:
        broadcaster.unsubscribe(response)
    return response


async def serve_file(request: web.Request) -> web.Response:
    layout = request.app[LAYOUT_KEY]
    url_path = request.match_info["path"]

    if not url_path:
        entry = default_entry(layout.dist_dir)
        if entry is None:
            return web.Response(
                text=inject_reload_snippet(PLACEHOLDER_HTML),
                content_type="text/html",
            )
        url_path = entry

    try:
        path = resolve_request_path(layout.dist_dir, url_path)
    except (ValueError, OSError, RuntimeError):
        # Embedded NUL bytes, symlink loops.
        return web.Response(status=404, text="Not found")
    if path is None:
        logger.warning("Refusing path outside output root: %s", url_path)
        return web.Response(status=403, text="Forbidden")

    loop = asyncio.get_running_loop()
    try:
        data = await loop.run_in_executor(None, path.read_bytes)
    except OSError:
        return web.Response(status=404, text="Not found")

    ext = path.suffix.lower()
    headers = {"Content-Type": MIME_TYPES.get(ext, DEFAULT_MIME)}
    if ext == ".html":
        html = data.decode("utf-8", errors="replace")
        data = inject_reload_snippet(html).encode("utf-8")
    return web.Response(body=data, headers=headers)


async def _stop_streams(app: web.Application):
    app[STOPPING_KEY].set()


def make_app(
    layout: Layout,
    broadcaster: Broadcaster,
    poll_interval: float = 1.0,
) -> web.Application:
    app = web.Application()
    app[LAYOUT_KEY] = layout
    app[BROADCASTER_KEY] = broadcaster
    app[POLL_INTERVAL_KEY] = poll_interval
    app[STOPPING_KEY] = asyncio.Event()
    app.on_shutdown.append(_stop_streams)

    app.router.add_get(RELOAD_PATH, reload_stream)
    app.router.add_get("/{path:.*}", serve_file)
    return app

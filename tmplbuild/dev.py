"""Watch mode: rebuild on change and live-reload the preview server."""

from __future__ import annotations

import asyncio
import logging
import sys

from aiohttp import web

from .broadcast import Broadcaster
from .config import DevConfig, Layout
from .errors import FilesystemError, ProcessSpawnError
from .log import setup_logging
from .server import entry_url, make_app
from .watch import ChangeHandler, Debouncer, RebuildCoordinator, start_observer

logger = logging.getLogger(__name__)

BUILD_MODULE = "tmplbuild.build"


async def spawn_build(layout: Layout) -> int:
    """Run one build in a child process, return its exit code."""
    cmd = [sys.executable, "-m", BUILD_MODULE]
    try:
        proc = await asyncio.create_subprocess_exec(*cmd, cwd=layout.root)
    except OSError as exc:
        raise ProcessSpawnError(f"could not start {' '.join(cmd)}: {exc}") from exc
    return await proc.wait()


async def serve(layout: Layout, config: DevConfig):
    if not layout.src_dir.is_dir():
        raise FilesystemError(layout.src_dir, "source directory not found")

    loop = asyncio.get_running_loop()
    broadcaster = Broadcaster()
    coordinator = RebuildCoordinator(lambda: spawn_build(layout), broadcaster)
    debouncer = Debouncer(coordinator.trigger, delay=config.debounce_s, loop=loop)

    # Initial build before starting the watcher.
    coordinator.trigger()

    runner = web.AppRunner(make_app(layout, broadcaster))
    await runner.setup()
    observer = None
    try:
        observer = start_observer(layout.src_dir, ChangeHandler(loop, debouncer))
        logger.info("Watching %s for changes...", layout.src_dir)

        site = web.TCPSite(runner, port=config.port)
        await site.start()
        await coordinator.wait_idle()
        logger.info("Preview server running at %s", entry_url(layout, config.port))
        await coordinator.wait_fatal()
    finally:
        debouncer.cancel()
        if observer is not None:
            observer.stop()
            observer.join()
        await runner.cleanup()


def main():
    setup_logging()
    try:
        asyncio.run(serve(Layout.cwd(), DevConfig()))
    except KeyboardInterrupt:
        pass
    except ProcessSpawnError as exc:
        logger.error("Build process failed to start: %s", exc)
        sys.exit(1)
    except FilesystemError as exc:
        logger.error("Filesystem error: %s", exc)
        sys.exit(1)
    except OSError as exc:
        # Typically the preview port is already in use.
        logger.error("Could not start preview server: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()

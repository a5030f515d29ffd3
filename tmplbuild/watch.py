"""Rebuild loop: filesystem events -> debounce -> serialized builds."""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import time
from pathlib import Path, PurePath
from typing import Awaitable, Callable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .broadcast import Broadcaster
from .config import DEBOUNCE_MS

logger = logging.getLogger(__name__)

WATCHED_EXTENSIONS = frozenset(
    {".html", ".njk", ".txt", ".json", ".css", ".js", ".ts"}
)

# Open/close notifications fire when the build itself reads templates.
_CHANGE_EVENTS = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)


def is_watched(path: str) -> bool:
    return PurePath(path).suffix.lower() in WATCHED_EXTENSIONS


class Debouncer:
    """Collapse a burst of change events into one callback.

    Each accepted event restarts the quiet-period timer; the callback runs
    once the timer expires without another accepted event.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        delay: float = DEBOUNCE_MS / 1000,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self._callback = callback
        self._delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def on_fs_event(self, path: str | None) -> bool:
        """Handle one raw change event. Return True if it was accepted."""
        if not path:
            return False
        if not is_watched(path):
            logger.debug("Ignoring change to %s", path)
            return False

        if self._handle is not None:
            self._handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)
        return True

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        self._callback()


class ChangeHandler(FileSystemEventHandler):
    """Forward watchdog events from the observer thread to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, debouncer: Debouncer):
        super().__init__()
        self._loop = loop
        self._debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return
        # Editors that save through a rename report the real file as dest.
        path = getattr(event, "dest_path", "") or event.src_path
        self._loop.call_soon_threadsafe(
            self._debouncer.on_fs_event, os.fsdecode(path)
        )


def start_observer(src_dir: Path, handler: FileSystemEventHandler) -> Observer:
    """Watch src_dir and everything below it."""
    observer = Observer()
    observer.schedule(handler, str(src_dir), recursive=True)
    observer.start()
    return observer


class CoordinatorState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"
    BUILDING_WITH_PENDING = "building_with_pending"


class RebuildCoordinator:
    """Run at most one build at a time.

    Triggers that arrive while a build is running collapse into a single
    follow-up build. A successful build pushes a reload to subscribers; a
    failed one is logged and the loop stays live.
    """

    def __init__(
        self,
        run_pass: Callable[[], Awaitable[int]],
        broadcaster: Broadcaster,
    ):
        self._run_pass = run_pass
        self._broadcaster = broadcaster
        self._state = CoordinatorState.IDLE
        self._idle = asyncio.Event()
        self._idle.set()
        self._fatal: asyncio.Future | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    def trigger(self):
        """Request a build. Must be called on the event loop thread."""
        if self._state is CoordinatorState.IDLE:
            self._state = CoordinatorState.BUILDING
            self._idle.clear()
            self._task = asyncio.get_running_loop().create_task(self._run())
        elif self._state is CoordinatorState.BUILDING:
            self._state = CoordinatorState.BUILDING_WITH_PENDING

    async def wait_idle(self):
        await self._idle.wait()

    async def wait_fatal(self):
        """Block until the loop can no longer build, then raise why."""
        await self._fatal_future()

    def _fatal_future(self) -> asyncio.Future:
        if self._fatal is None:
            self._fatal = asyncio.get_running_loop().create_future()
        return self._fatal

    async def _run(self):
        while True:
            logger.info("Running build...")
            started = time.monotonic()
            try:
                exit_code = await self._run_pass()
            except Exception as exc:
                self._state = CoordinatorState.IDLE
                self._idle.set()
                fatal = self._fatal_future()
                if not fatal.done():
                    fatal.set_exception(exc)
                return

            if exit_code == 0:
                logger.info("Build finished in %.2fs", time.monotonic() - started)
                await self._broadcaster.broadcast_reload()
            else:
                logger.error("Build failed with code %s", exit_code)

            if self._state is CoordinatorState.BUILDING_WITH_PENDING:
                self._state = CoordinatorState.BUILDING
                continue

            self._state = CoordinatorState.IDLE
            self._idle.set()
            return

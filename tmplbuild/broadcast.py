"""Live-reload subscribers and the reload push."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

RELOAD_MESSAGE = b"data: reload\n\n"


class Subscriber(Protocol):
    async def write(self, data: bytes) -> None: ...


class Broadcaster:
    """Set of open reload streams.

    Only touched from the event loop thread, so the set needs no lock.
    """

    def __init__(self):
        self._subscribers: set[Subscriber] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: object) -> bool:
        return subscriber in self._subscribers

    def subscribe(self, subscriber: Subscriber):
        self._subscribers.add(subscriber)
        logger.debug("Reload subscriber added (%d open)", len(self._subscribers))

    def unsubscribe(self, subscriber: Subscriber):
        self._subscribers.discard(subscriber)
        logger.debug("Reload subscriber removed (%d open)", len(self._subscribers))

    async def broadcast_reload(self) -> int:
        """Send the reload message to every current subscriber.

        Returns how many writes succeeded. A failed write is skipped; the
        connection is dropped from the set only when its stream closes.
        """
        if not self._subscribers:
            return 0

        delivered = 0
        for subscriber in list(self._subscribers):
            try:
                await subscriber.write(RELOAD_MESSAGE)
            except (ConnectionError, RuntimeError) as exc:
                logger.debug("Skipping reload subscriber: %s", exc)
                continue
            delivered += 1
        return delivered

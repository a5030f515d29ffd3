"""
Tests for the reload broadcaster.
"""

from tmplbuild.broadcast import RELOAD_MESSAGE, Broadcaster


class RecordingSubscriber:
    def __init__(self):
        self.messages = []

    async def write(self, data):
        self.messages.append(data)


class BrokenSubscriber:
    async def write(self, data):
        raise ConnectionResetError("peer went away")


async def test_broadcast_reaches_every_subscriber():
    broadcaster = Broadcaster()
    first, second = RecordingSubscriber(), RecordingSubscriber()
    broadcaster.subscribe(first)
    broadcaster.subscribe(second)

    delivered = await broadcaster.broadcast_reload()

    assert delivered == 2
    assert first.messages == [RELOAD_MESSAGE]
    assert second.messages == [RELOAD_MESSAGE]


async def test_broadcast_with_no_subscribers():
    assert await Broadcaster().broadcast_reload() == 0


async def test_failed_write_is_skipped():
    broadcaster = Broadcaster()
    broken, healthy = BrokenSubscriber(), RecordingSubscriber()
    broadcaster.subscribe(broken)
    broadcaster.subscribe(healthy)

    delivered = await broadcaster.broadcast_reload()

    assert delivered == 1
    assert healthy.messages == [RELOAD_MESSAGE]
    # Only the stream closing removes a subscriber.
    assert broken in broadcaster


async def test_unsubscribe_twice_is_harmless():
    broadcaster = Broadcaster()
    leaving, staying = RecordingSubscriber(), RecordingSubscriber()
    broadcaster.subscribe(leaving)
    broadcaster.subscribe(staying)

    broadcaster.unsubscribe(leaving)
    broadcaster.unsubscribe(leaving)
    await broadcaster.broadcast_reload()

    assert len(broadcaster) == 1
    assert leaving.messages == []
    assert staying.messages == [RELOAD_MESSAGE]


async def test_late_subscriber_gets_no_replay():
    broadcaster = Broadcaster()
    early = RecordingSubscriber()
    broadcaster.subscribe(early)
    await broadcaster.broadcast_reload()

    late = RecordingSubscriber()
    broadcaster.subscribe(late)
    await broadcaster.broadcast_reload()

    assert early.messages == [RELOAD_MESSAGE, RELOAD_MESSAGE]
    assert late.messages == [RELOAD_MESSAGE]

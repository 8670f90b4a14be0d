import asyncio
import json

import pytest

from fakes import T0, ManualNotifications
from judgeboard.schemas import Leaderboard
from judgeboard.services.realtime import LeaderboardWatcher, RedisScoreNotifier


class CountingCompute:
    def __init__(self):
        self.calls = 0

    async def __call__(self) -> Leaderboard:
        self.calls += 1
        return Leaderboard(id=f"lb-{self.calls}", event_id="event-1", calculated_at=T0)


async def test_initial_value_then_one_recompute_per_burst():
    compute = CountingCompute()
    notifications = ManualNotifications()
    watcher = LeaderboardWatcher(compute, notifications, debounce_ms=50)
    stream = watcher.watch()

    initial = await stream.__anext__()
    assert initial.id == "lb-1"

    for _ in range(5):
        notifications.push()
    updated = await stream.__anext__()

    assert updated.id == "lb-2"
    assert compute.calls == 2
    await stream.aclose()


async def test_separate_bursts_recompute_separately():
    compute = CountingCompute()
    notifications = ManualNotifications()
    stream = LeaderboardWatcher(compute, notifications, debounce_ms=10).watch()

    await stream.__anext__()
    notifications.push()
    await stream.__anext__()
    notifications.push()
    notifications.push()
    await stream.__anext__()

    assert compute.calls == 3
    await stream.aclose()


async def test_stream_ends_when_notifications_end():
    compute = CountingCompute()
    notifications = ManualNotifications()
    notifications.push()
    notifications.push()
    notifications.close()

    boards = [board async for board in LeaderboardWatcher(compute, notifications, debounce_ms=20)]

    assert [b.id for b in boards] == ["lb-1", "lb-2"]


async def test_notification_failure_surfaces():
    async def broken():
        yield "changed"
        raise ConnectionError("redis went away")

    stream = LeaderboardWatcher(CountingCompute(), broken(), debounce_ms=0).watch()
    await stream.__anext__()

    with pytest.raises(ConnectionError):
        async for _ in stream:
            pass


async def test_cancelling_consumer_stops_watching():
    compute = CountingCompute()
    notifications = ManualNotifications()
    stream = LeaderboardWatcher(compute, notifications, debounce_ms=10).watch()
    await stream.__anext__()

    pending = asyncio.ensure_future(stream.__anext__())
    await asyncio.sleep(0)
    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending

    assert compute.calls == 1



class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, payload):
        self.published.append((channel, json.loads(payload)))


async def test_notifier_publishes_event_and_submission_channels():
    client = FakeRedis()

    await RedisScoreNotifier(client).publish("event-1", "sub-1")

    assert client.published == [
        ("scores:event:event-1", {"event_id": "event-1", "submission_id": "sub-1"}),
        ("scores:submission:sub-1", {"event_id": "event-1", "submission_id": "sub-1"}),
    ]

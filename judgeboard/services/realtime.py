"""Live leaderboards: recompute when scores change, at most once per burst.

Score writes publish a notification on Redis pub/sub. A watcher yields the
current leaderboard immediately, then waits for notifications; the first one
opens a debounce window, everything else arriving inside it is absorbed, and
the leaderboard is recomputed once when the window closes.
"""

import asyncio
import contextlib
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

import redis
import redis.asyncio as aioredis

from judgeboard.core.config import settings
from judgeboard.core.metrics import (
    LEADERBOARD_NOTIFICATIONS_COALESCED_TOTAL,
    LEADERBOARD_RECOMPUTES_TOTAL,
    LEADERBOARD_WATCHERS,
    SCORE_NOTIFICATIONS_FAILED_TOTAL,
)
from judgeboard.schemas import Leaderboard

logger = logging.getLogger(__name__)

EVENT_CHANNEL = "scores:event:{event_id}"
SUBMISSION_CHANNEL = "scores:submission:{submission_id}"

_CLOSED = object()


class RedisScoreNotifier:
    """Publishes score-change notifications for one event and one submission.

    Best-effort: Redis failures are logged and counted, never raised.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None):
        self.client = client or aioredis.from_url(settings.REDIS_URL)

    async def publish(self, event_id: str, submission_id: str) -> None:
        payload = json.dumps({"event_id": event_id, "submission_id": submission_id})
        try:
            await self.client.publish(EVENT_CHANNEL.format(event_id=event_id), payload)
            await self.client.publish(SUBMISSION_CHANNEL.format(submission_id=submission_id), payload)
        except redis.RedisError as e:
            SCORE_NOTIFICATIONS_FAILED_TOTAL.inc()
            logger.warning(
                "score_notification_failed",
                extra={"event_id": event_id, "submission_id": submission_id, "error": str(e)},
            )


async def redis_notifications(client: aioredis.Redis, channel: str) -> AsyncIterator[dict]:
    """Yield decoded payloads published on ``channel`` until cancelled."""
    pubsub = client.pubsub()
    await pubsub.subscribe(channel)
    logger.debug("notifications_subscribed", extra={"channel": channel})
    try:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message["data"]
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            yield json.loads(data)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


def event_notifications(client: aioredis.Redis, event_id: str) -> AsyncIterator[dict]:
    return redis_notifications(client, EVENT_CHANNEL.format(event_id=event_id))


class LeaderboardWatcher:
    """Yields an initial leaderboard, then one recomputation per notification burst."""

    def __init__(
        self,
        compute: Callable[[], Awaitable[Leaderboard]],
        notifications: AsyncIterator,
        debounce_ms: Optional[int] = None,
    ):
        self.compute = compute
        self.notifications = notifications
        ms = settings.LEADERBOARD_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self.window = max(ms, 0) / 1000.0

    async def _pump(self, queue: asyncio.Queue) -> None:
        try:
            async for item in self.notifications:
                queue.put_nowait(item)
        except Exception as exc:
            # handed to the consumer, which re-raises it
            queue.put_nowait(exc)
        finally:
            queue.put_nowait(_CLOSED)

    async def watch(self) -> AsyncIterator[Leaderboard]:
        queue: asyncio.Queue = asyncio.Queue()
        pump = asyncio.create_task(self._pump(queue))
        LEADERBOARD_WATCHERS.inc()
        try:
            yield await self.compute()
            while True:
                first = await queue.get()
                if first is _CLOSED:
                    return
                if isinstance(first, Exception):
                    raise first

                await asyncio.sleep(self.window)
                coalesced = 0
                closed = False
                while not queue.empty():
                    item = queue.get_nowait()
                    if item is _CLOSED:
                        closed = True
                        break
                    if isinstance(item, Exception):
                        raise item
                    coalesced += 1

                if coalesced:
                    LEADERBOARD_NOTIFICATIONS_COALESCED_TOTAL.inc(coalesced)
                LEADERBOARD_RECOMPUTES_TOTAL.inc()
                leaderboard = await self.compute()
                logger.debug(
                    "leaderboard_recomputed",
                    extra={"event_id": leaderboard.event_id, "coalesced": coalesced},
                )
                yield leaderboard
                if closed:
                    return
        finally:
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump
            LEADERBOARD_WATCHERS.dec()

    def __aiter__(self):
        return self.watch()

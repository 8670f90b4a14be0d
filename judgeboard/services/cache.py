import logging
from typing import Optional

import redis

from judgeboard.core.config import settings
from judgeboard.schemas import Leaderboard

logger = logging.getLogger(__name__)


class RedisLeaderboardCache:
    """Last snapshotted ranking per event, kept in a Redis sorted set.

    Read by dashboards that only need the latest standings; the scores in the
    database stay the source of truth.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client
        self.leaderboard_key = "leaderboard:{event_id}"
        self.entry_key = "leaderboard:{event_id}:entry:{entity_id}"

    def connect(self):
        """Connect to Redis with proper configuration"""
        self.redis_client = redis.from_url(
            settings.REDIS_URL,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        self.redis_client.ping()
        logger.info("redis_leaderboard_cache_connected")

    def store(self, leaderboard: Leaderboard) -> None:
        if not self.redis_client:
            self.connect()

        key = self.leaderboard_key.format(event_id=leaderboard.event_id)
        ttl = settings.LEADERBOARD_CACHE_TTL_SECONDS

        pipe = self.redis_client.pipeline()
        # Replace rather than merge so teams that dropped out disappear
        pipe.delete(key)
        for entry in leaderboard.entries:
            pipe.zadd(key, {entry.entity_id: float(entry.average_score)})
            entry_key = self.entry_key.format(event_id=leaderboard.event_id, entity_id=entry.entity_id)
            pipe.hset(
                entry_key,
                mapping={
                    "display_name": entry.display_name,
                    "average_score": float(entry.average_score),
                    "total_score": float(entry.total_score),
                    "submission_count": entry.submission_count,
                    "position": entry.position,
                    "calculated_at": leaderboard.calculated_at.isoformat(),
                },
            )
            pipe.expire(entry_key, ttl)
        pipe.expire(key, ttl)
        pipe.execute()
        logger.info(
            "leaderboard_cached",
            extra={"event_id": leaderboard.event_id, "entries": len(leaderboard.entries)},
        )


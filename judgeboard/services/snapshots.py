import logging
from datetime import timedelta
from typing import Optional

import redis

from judgeboard.core.metrics import SNAPSHOTS_TOTAL
from judgeboard.services.cache import RedisLeaderboardCache
from judgeboard.services.leaderboard import LeaderboardCalculator
from judgeboard.services.sql_stores import SqlSnapshotStore
from judgeboard.utils.time import utcnow

logger = logging.getLogger(__name__)


async def snapshot_leaderboard(
    event_id: str,
    calculator: LeaderboardCalculator,
    snapshot_store: SqlSnapshotStore,
    cache: Optional[RedisLeaderboardCache] = None,
) -> dict:
    """Compute the team leaderboard now and persist it for position history."""
    try:
        leaderboard = await calculator.calculate_leaderboard(event_id)
        stored = await snapshot_store.save(leaderboard)
    except Exception:
        SNAPSHOTS_TOTAL.labels(outcome="failed").inc()
        raise

    # Rows are committed; a cache fault must not make the task retry and save twice
    cached = False
    if cache is not None:
        try:
            cache.store(leaderboard)
            cached = True
        except redis.RedisError as e:
            SNAPSHOTS_TOTAL.labels(outcome="cache_failed").inc()
            logger.warning(
                "leaderboard_cache_failed",
                extra={"event_id": event_id, "leaderboard_id": leaderboard.id, "error": str(e)},
            )

    SNAPSHOTS_TOTAL.labels(outcome="stored").inc()
    logger.info(
        "leaderboard_snapshot_stored",
        extra={"event_id": event_id, "leaderboard_id": leaderboard.id, "rows": stored},
    )
    return {
        "event_id": event_id,
        "leaderboard_id": leaderboard.id,
        "entries": stored,
        "cached": cached,
        "calculated_at": leaderboard.calculated_at.isoformat(),
    }


async def prune_snapshots(snapshot_store: SqlSnapshotStore, retention_days: int) -> int:
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = await snapshot_store.prune(cutoff)
    logger.info("leaderboard_snapshots_pruned", extra={"deleted": deleted, "cutoff": cutoff.isoformat()})
    return deleted

import os
import time
import logging
from typing import Optional

from prometheus_client import Counter, Histogram, Gauge, start_http_server


# ----------
# Core metrics
# ----------

# Scoring
SCORES_SUBMITTED_TOTAL = Counter(
    "scores_submitted_total",
    "Judge score writes",
    labelnames=("mode",),  # created | updated | comment
)

SCORE_VALIDATION_FAILURES_TOTAL = Counter(
    "score_validation_failures_total",
    "Score or rubric validation failures",
    labelnames=("reason",),  # score | rubric
)

# Leaderboards
LEADERBOARD_CALCULATIONS_TOTAL = Counter(
    "leaderboard_calculations_total",
    "Total leaderboard calculations",
    labelnames=("kind",),  # team | individual
)

LEADERBOARD_CALCULATION_DURATION_SECONDS = Histogram(
    "leaderboard_calculation_duration_seconds",
    "Time spent calculating a leaderboard from raw scores",
    labelnames=("kind",),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

LEADERBOARD_QUERIES_TOTAL = Counter(
    "leaderboard_queries_total",
    "Total leaderboard API queries",
    labelnames=("kind", "sort"),
)

# Realtime recomputation
LEADERBOARD_RECOMPUTES_TOTAL = Counter(
    "leaderboard_recomputes_total",
    "Leaderboard recomputations triggered by score change notifications",
)

LEADERBOARD_NOTIFICATIONS_COALESCED_TOTAL = Counter(
    "leaderboard_notifications_coalesced_total",
    "Score change notifications absorbed by the debounce window",
)

LEADERBOARD_WATCHERS = Gauge(
    "leaderboard_watchers",
    "Currently open realtime leaderboard streams",
)

SCORE_NOTIFICATIONS_FAILED_TOTAL = Counter(
    "score_notifications_failed_total",
    "Score change notifications that could not be published",
)

# History / trends
TREND_QUERIES_TOTAL = Counter(
    "trend_queries_total",
    "Team score history and trend queries",
    labelnames=("kind",),  # history | trend | positions
)

# Snapshots
SNAPSHOTS_TOTAL = Counter(
    "leaderboard_snapshots_total",
    "Leaderboard snapshots persisted",
    labelnames=("outcome",),  # stored | failed | cache_failed
)

# System health metrics
DATABASE_HEALTH = Gauge(
    "database_health",
    "Database connection health status (1=healthy, 0=unhealthy)",
)

REDIS_HEALTH = Gauge(
    "redis_health",
    "Redis connection health status (1=healthy, 0=unhealthy)",
)

OVERALL_SYSTEM_HEALTH = Gauge(
    "overall_system_health",
    "Overall system health status (1=healthy, 0=unhealthy)",
)

# Start as unhealthy until checked
DATABASE_HEALTH.set(0)
REDIS_HEALTH.set(0)
OVERALL_SYSTEM_HEALTH.set(0)


def check_database_health() -> bool:
    """Check database health and update metrics"""
    try:
        from judgeboard.db.session import engine
        from sqlalchemy import text
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        DATABASE_HEALTH.set(1)
        return True
    except Exception as e:
        DATABASE_HEALTH.set(0)
        logging.getLogger(__name__).error(f"Database health check failed: {str(e)}")
        return False


def check_redis_health() -> bool:
    """Check Redis health and update metrics"""
    try:
        import redis
        from judgeboard.core.config import settings
        r = redis.from_url(settings.REDIS_URL, socket_timeout=2)
        r.ping()
        REDIS_HEALTH.set(1)
        return True
    except Exception as e:
        REDIS_HEALTH.set(0)
        logging.getLogger(__name__).error(f"Redis health check failed: {str(e)}")
        return False


def check_overall_system_health() -> dict:
    """Check all system components and update overall health"""
    db_ok = check_database_health()
    redis_ok = check_redis_health()

    overall_healthy = db_ok and redis_ok
    OVERALL_SYSTEM_HEALTH.set(1 if overall_healthy else 0)

    return {
        "database": db_ok,
        "redis": redis_ok,
        "overall": overall_healthy,
    }


def init_fastapi_instrumentation(app) -> None:
    """Attach Prometheus instrumentation and expose /metrics.

    Imported lazily so worker processes don't need FastAPI instrumentator.
    """
    from prometheus_fastapi_instrumentator import Instrumentator
    from prometheus_client import CollectorRegistry, multiprocess, REGISTRY

    mp_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
    if mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        instrumentator = Instrumentator(registry=registry)
    else:
        # Default registry already holds the custom metrics above
        instrumentator = Instrumentator(registry=REGISTRY)

    instrumentator.instrument(app).expose(app, include_in_schema=False)


def start_worker_metrics_server(port: Optional[int] = None) -> None:
    """Start a Prometheus metrics HTTP server for the Celery worker process."""
    logger = logging.getLogger(__name__)
    p = int(port or os.getenv("WORKER_METRICS_PORT", "9101"))
    try:
        mp_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
        if mp_dir:
            from prometheus_client import CollectorRegistry, multiprocess

            os.makedirs(mp_dir, exist_ok=True)
            registry = CollectorRegistry()
            multiprocess.MultiProcessCollector(registry)
            start_http_server(p, addr="0.0.0.0", registry=registry)
        else:
            start_http_server(p, addr="0.0.0.0")
        logger.info(f"Worker metrics server listening on port {p}")
    except OSError as e:
        # Port already in use in a forked worker
        logger.error(f"Failed to start worker metrics server on port {p}: {str(e)}")


class DurationTimer:
    """Simple context manager to measure durations with perf_counter."""

    def __init__(self):
        self._start = 0.0
        self.seconds = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.seconds = max(0.0, time.perf_counter() - self._start)
        return False

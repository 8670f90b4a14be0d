import asyncio
import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_failure, task_postrun, task_prerun, task_retry

from judgeboard.core.config import settings
from judgeboard.core.logging_config import setup_logging
from judgeboard.core.metrics import start_worker_metrics_server

# Ensure structured JSON logging for the worker process
setup_logging()

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_time_limit=300,
    task_reject_on_worker_lost=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "prune-leaderboard-snapshots": {
            "task": "judgeboard.core.celery.prune_snapshots_task",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)


@celery_app.on_after_configure.connect
def setup_observability(sender, **kwargs):
    logger = logging.getLogger(__name__)
    logger.info("Setting up observability for Celery worker")
    start_worker_metrics_server()


# ---- Celery task lifecycle structured logs ----

def _event_id(args, kwargs):
    if isinstance(kwargs, dict) and kwargs.get("event_id"):
        return kwargs["event_id"]
    if isinstance(args, (list, tuple)) and args and isinstance(args[0], str):
        return args[0]
    return None


@task_prerun.connect
def _on_task_start(task_id=None, task=None, args=None, kwargs=None, **extra_kwargs):
    logging.getLogger("celery.task").info(
        "task_started",
        extra={
            "task_name": getattr(task, "name", None),
            "task_id": task_id,
            "event_id": _event_id(args, kwargs),
        },
    )


@task_postrun.connect
def _on_task_success(task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **extra_kwargs):
    logging.getLogger("celery.task").info(
        "task_finished",
        extra={
            "task_name": getattr(task, "name", None),
            "task_id": task_id,
            "event_id": _event_id(args, kwargs),
            "state": state,
        },
    )


@task_failure.connect
def _on_task_failure(task_id=None, exception=None, args=None, kwargs=None, traceback=None, einfo=None, sender=None, **extra_kwargs):
    logging.getLogger("celery.task").error(
        f"task_failed: {str(exception)}",
        extra={
            "task_name": getattr(sender, "name", None),
            "task_id": task_id,
            "event_id": _event_id(args, kwargs),
        },
    )


@task_retry.connect
def _on_task_retry(request=None, reason=None, einfo=None, **extra_kwargs):
    logging.getLogger("celery.task").warning(
        f"task_retry: {str(reason)}",
        extra={
            "task_name": getattr(getattr(request, "task", None), "name", None),
            "task_id": getattr(request, "id", None),
            "event_id": _event_id(getattr(request, "args", None), getattr(request, "kwargs", None)),
        },
    )


@celery_app.task(bind=True, max_retries=3)
def snapshot_leaderboard_task(self, event_id: str):
    """Persist the current team leaderboard of an event and refresh the Redis cache."""
    from judgeboard.services.cache import RedisLeaderboardCache
    from judgeboard.services.factory import Services
    from judgeboard.services.snapshots import snapshot_leaderboard

    services = Services()
    try:
        return asyncio.run(
            snapshot_leaderboard(event_id, services.calculator, services.snapshots, cache=RedisLeaderboardCache())
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=30)


@celery_app.task
def prune_snapshots_task():
    from judgeboard.services.factory import Services
    from judgeboard.services.snapshots import prune_snapshots

    return asyncio.run(prune_snapshots(Services().snapshots, settings.SNAPSHOT_RETENTION_DAYS))

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import AsyncIterator, Callable

import redis.asyncio as aioredis
from fastapi import HTTPException

from judgeboard.core.config import settings
from judgeboard.core.errors import DataAccessError, NotFoundError, ValidationFailed
from judgeboard.services.factory import Services
from judgeboard.services.realtime import RedisScoreNotifier, event_notifications

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _redis() -> aioredis.Redis:
    return aioredis.from_url(settings.REDIS_URL)


@lru_cache(maxsize=1)
def _services() -> Services:
    return Services(notifier=RedisScoreNotifier(_redis()))


def get_services() -> Services:
    """FastAPI dependency; overridden in tests with in-memory stores."""
    return _services()


def get_notification_source() -> Callable[[str], AsyncIterator]:
    """Factory of per-event score change notification streams."""
    client = _redis()
    return lambda event_id: event_notifications(client, event_id)


@contextmanager
def http_errors(**context):
    """Translate core exceptions into HTTP responses, logging with ``context``."""
    try:
        yield
    except NotFoundError as e:
        logger.info("resource_not_found", extra={**context, "resource": e.kind})
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValidationFailed as e:
        logger.info("validation_failed", extra={**context, "errors": e.errors})
        raise HTTPException(status_code=422, detail={"errors": e.errors}) from e
    except DataAccessError as e:
        logger.error("data_access_failed", extra={**context, "error": str(e)})
        raise HTTPException(status_code=503, detail="Storage temporarily unavailable") from e

import logging
from typing import Optional

from pythonjsonlogger import jsonlogger

from judgeboard.core.config import settings

# Keys every record carries, with the value used when a call site omits them.
# Request keys come from the HTTP middleware.
REQUEST_DEFAULTS = {
    "request_id": "-",
    "method": "-",
    "path": "-",
    "status_code": 0,
    "duration_ms": 0,
    "client": "-",
}
DOMAIN_DEFAULTS = dict.fromkeys(
    ("event_id", "team_id", "submission_id", "judge_id", "rubric_id", "task_name", "task_id")
)

NOISY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "celery")


class ContextDefaultsFilter(logging.Filter):
    """Fill in missing context keys so every JSON line has the same shape."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.defaults = {**REQUEST_DEFAULTS, **DOMAIN_DEFAULTS, "service": service_name}

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for key, default in self.defaults.items():
            if not hasattr(record, key):
                setattr(record, key, default)
        return True


def json_format() -> str:
    keys = ("asctime", "levelname", "name", "message", *REQUEST_DEFAULTS, "service", *DOMAIN_DEFAULTS)
    return " ".join(f"%({key})s" for key in keys)


def setup_logging(level: Optional[str] = None, service_name: Optional[str] = None) -> None:
    """Send structured JSON logs from the root logger to stdout.

    ``level`` and ``service_name`` default to ``settings.LOG_LEVEL`` and
    ``settings.SERVICE_NAME``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        jsonlogger.JsonFormatter(json_format(), rename_fields={"levelname": "level", "asctime": "time"})
    )
    handler.addFilter(ContextDefaultsFilter(service_name or settings.SERVICE_NAME))

    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    root.handlers[:] = [handler]
    logging.captureWarnings(True)

    for name in NOISY_LOGGERS:
        lib_logger = logging.getLogger(name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True

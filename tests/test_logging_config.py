import json
import logging

import pytest

from judgeboard.core.config import settings
from judgeboard.core.logging_config import ContextDefaultsFilter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_filter_fills_missing_keys_only():
    record = logging.LogRecord("judgeboard", logging.INFO, __file__, 1, "score_saved", None, None)
    record.judge_id = "judge-1"

    assert ContextDefaultsFilter("api").filter(record)

    assert record.judge_id == "judge-1"
    assert record.submission_id is None
    assert record.request_id == "-"
    assert record.status_code == 0
    assert record.service == "api"


def test_setup_logging_reads_settings(restore_root_logger, monkeypatch, capsys):
    monkeypatch.setattr(settings, "LOG_LEVEL", "warning")
    monkeypatch.setattr(settings, "SERVICE_NAME", "judge-worker")

    setup_logging()
    logging.getLogger("judgeboard.test").info("hidden")
    logging.getLogger("judgeboard.test").warning("leaderboard_cache_failed", extra={"event_id": "event-1"})

    lines = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.strip()]
    assert restore_root_logger.level == logging.WARNING
    assert len(lines) == 1
    assert lines[0]["message"] == "leaderboard_cache_failed"
    assert lines[0]["level"] == "WARNING"
    assert lines[0]["service"] == "judge-worker"
    assert lines[0]["event_id"] == "event-1"
    assert lines[0]["team_id"] is None


def test_explicit_arguments_override_settings(restore_root_logger):
    setup_logging(level="debug", service_name="api")

    (handler,) = restore_root_logger.handlers
    assert restore_root_logger.level == logging.DEBUG
    assert handler.filters[0].defaults["service"] == "api"

"""Unit tests for structured logging setup."""

import json
import logging

import structlog

from dndcrawler.config.config import MonitoringConfig
from dndcrawler.observability import configure_logging


def test_json_log_file_carries_run_id(tmp_path):
    log_file = tmp_path / "logs" / "crawl.log"
    configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

    logger = structlog.get_logger("dndcrawler.test")
    with structlog.contextvars.bound_contextvars(run_id="run-1"):
        logger.info("Read item", item="Light", count=1, total=1)
    logger.debug("Not written")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert len(lines) == 1
    entry = lines[0]
    assert entry["event"] == "Read item"
    assert entry["run_id"] == "run-1"
    assert entry["level"] == "info"
    assert entry["logger"] == "dndcrawler.test"
    assert entry["item"] == "Light"


def test_level_is_applied_to_root_logger():
    configure_logging(MonitoringConfig(log_level="warning"))
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING

"""Tests for structured logging setup."""

import json
import logging
import sys

import pytest
from loguru import logger

from medportal.core.logger import correlation_id_ctx, setup_structured_logging


@pytest.fixture
def restore_logging():
    yield
    logger.remove()
    logger.configure(patcher=None)
    logger.add(sys.stderr)


class TestStructuredLogging:
    """Tests for setup_structured_logging."""

    def test_json_file_carries_correlation_id(self, tmp_path, restore_logging):
        """Test that JSON lines include the request correlation id."""
        setup_structured_logging(level="INFO", json_format=True, logs_dir=tmp_path)

        token = correlation_id_ctx.set("req-42")
        try:
            logger.info("patient listed")
        finally:
            correlation_id_ctx.reset(token)

        lines = (tmp_path / "medportal.jsonl").read_text().splitlines()
        records = [json.loads(line)["record"] for line in lines]
        [record] = [r for r in records if r["message"] == "patient listed"]
        assert record["extra"]["correlation_id"] == "req-42"

    def test_stdlib_logging_is_intercepted(self, tmp_path, restore_logging):
        """Test that stdlib loggers end up in the loguru sinks."""
        setup_structured_logging(level="INFO", json_format=True, logs_dir=tmp_path)

        logging.getLogger("medportal.repositories.user_repository").info("created user")

        content = (tmp_path / "medportal.jsonl").read_text()
        assert "created user" in content

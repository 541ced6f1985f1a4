"""Unit tests for Loguru configuration."""

import json
import logging
import sys
from pathlib import Path

import pytest
from loguru import logger

from src.federation.api.utils.app_startup import REDACTED, configure_logging
from src.federation.runtime.settings import BridgeSettings


@pytest.fixture
def restore_logger():
    """Put Loguru back to its default state after configure_logging ran."""
    yield
    logger.remove()
    logger.configure(extra={}, patcher=None)
    logger.add(sys.stderr)


@pytest.fixture
def json_log_settings(settings_env, tmp_path) -> BridgeSettings:
    return BridgeSettings(
        **settings_env,
        LOG_FILE=str(tmp_path / "logs" / "bridge.log"),
        LOG_FORMAT="json",
        LOG_LEVEL="DEBUG",
        _env_file=None,
    )


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_file_sink(self, json_log_settings, restore_logger):
        """Should write serialized records to the configured log file."""
        configure_logging(json_log_settings)
        logger.info("Looking up user by username", username="alice")
        logger.complete()
        logger.remove()

        lines = Path(json_log_settings.log_file).read_text().splitlines()
        records = [json.loads(line)["record"] for line in lines]
        lookup = [r for r in records if r["message"] == "Looking up user by username"]
        assert lookup[0]["extra"]["username"] == "alice"
        assert lookup[0]["extra"]["request_id"] == "-"

    def test_credentials_redacted(self, json_log_settings, restore_logger):
        """Should mask credential-like extras before they reach a sink."""
        configure_logging(json_log_settings)
        logger.warning("Login attempt", password="s3cret-value", token="tok-value-123")
        logger.complete()
        logger.remove()

        content = Path(json_log_settings.log_file).read_text()
        assert "s3cret-value" not in content
        assert "tok-value-123" not in content
        assert REDACTED in content

    def test_stdlib_logging_forwarded(self, bridge_settings, restore_logger):
        """Should route stdlib loggers into Loguru and quiet httpx."""
        configure_logging(bridge_settings)
        received = []
        logger.add(lambda message: received.append(message.record), level="DEBUG")

        logging.getLogger("uvicorn.error").warning("worker booted")
        logging.getLogger("httpx").info("HTTP Request: GET /users")

        messages = [r["message"] for r in received]
        assert "worker booted" in messages
        assert "HTTP Request: GET /users" not in messages
        assert logging.getLogger("httpx").level == logging.WARNING

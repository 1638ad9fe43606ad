"""
Unit tests for structlog configuration.
"""

import json

import pytest
import structlog

from smartfetch.config import Settings
from smartfetch.logging_config import setup_logging
from smartfetch.version import get_current_pipeline_version


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.unit
class TestSetupLogging:
    """Test setup_logging()."""

    def test_json_lines_carry_pipeline_version(self, capsys):
        setup_logging(Settings(log_level="INFO", log_json=True), cache_loggers=False)

        structlog.get_logger("smartfetch.test").info("item_processed", source_id="vid-1")

        line = json.loads(capsys.readouterr().out.strip())
        assert line["event"] == "item_processed"
        assert line["source_id"] == "vid-1"
        assert line["level"] == "info"
        assert line["pipeline_version"] == get_current_pipeline_version().to_repr()
        assert "timestamp" in line

    def test_level_filtering(self, capsys):
        setup_logging(Settings(log_level="warning", log_json=True), cache_loggers=False)

        logger = structlog.get_logger("smartfetch.test")
        logger.info("candidates_filtered")
        logger.warning("pattern_rule_failed", rule_name="overlay:bad")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "pattern_rule_failed"

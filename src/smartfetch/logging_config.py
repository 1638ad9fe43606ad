"""
Structured logging configuration using structlog.

Every log line carries the pipeline version so a stored result and the
log lines that produced it can be traced to the same rule set and weights.
Library code never configures logging itself; the host process calls
setup_logging() once at startup.
"""

import logging
from typing import Optional

import structlog

from .config import Settings, settings
from .version import get_current_pipeline_version


def add_pipeline_version(logger, method_name, event_dict):
    """structlog processor stamping the short pipeline version."""
    event_dict.setdefault("pipeline_version", get_current_pipeline_version().to_repr())
    return event_dict


def setup_logging(config: Optional[Settings] = None, cache_loggers: bool = True) -> None:
    """
    Configure structlog for the extraction pipeline.

    Args:
        config: Settings to read log level/format from (default: global settings)
        cache_loggers: Cache bound loggers on first use (disable in tests that
            capture output)
    """
    config = config or settings

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            add_pipeline_version,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.processors.JSONRenderer()
                if config.log_json
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )

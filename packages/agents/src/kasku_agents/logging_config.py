"""structlog setup for processes embedding the engine.

Library modules only call ``structlog.get_logger()``; the host application
calls ``configure_logging`` once at startup.
"""

import logging

import structlog

from kasku_agents.config import KaskuConfig


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """
    Install a filtering structlog pipeline.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json: Render JSON lines instead of the console renderer.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


def configure_logging_from(config: KaskuConfig) -> None:
    """Configure logging from settings; production renders JSON."""
    configure_logging(config.log_level, json=config.is_production)

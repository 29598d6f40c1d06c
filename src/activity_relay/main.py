"""
Main application entry point for the GitHub activity relay.

This module configures logging, validates the configuration and runs the
relay until it receives SIGINT or SIGTERM.
"""

import asyncio
import logging
import sys

import structlog

from .config import Settings, load_settings
from .exceptions import ConfigurationError
from .standalone import RelayApp


def setup_logging(settings: Settings) -> None:
    """Configure structured logging."""
    level = settings.effective_log_level
    logging.basicConfig(level=getattr(logging, level), format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, level))
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def main() -> int:
    """
    Main entry point.

    Returns:
        Process exit code: 0 after a graceful shutdown, 1 on startup failure
    """
    logger = structlog.get_logger()

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e), missing=e.missing)
        return 1

    setup_logging(settings)
    logger = structlog.get_logger()

    app = RelayApp(settings)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.error("Application failed", error=str(e))
        return 1

    logger.info("Application shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())

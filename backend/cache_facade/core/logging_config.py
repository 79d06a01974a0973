"""
Logging Configuration
=====================
Centralized logging setup using loguru for structured logging.

Features:
- Structured JSON logging for production
- Human-readable logs for development
- Standard library logging (redis-py) routed through loguru
"""

import sys
import logging
from typing import Optional

from loguru import logger

from cache_facade.core.config import Settings, get_settings


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

class InterceptHandler(logging.Handler):
    """
    Intercept standard logging messages and redirect to loguru.

    redis-py reports through the standard library; this keeps its
    records in the same sinks and format as ours.
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure logging for processes embedding the cache façade

    Sets up:
    - Console logging (stdout)
    - JSON formatting for production
    - Intercepts redis-py standard library logging

    Args:
        settings: Settings to read environment and level from
    """
    settings = settings or get_settings()

    # Remove default loguru handler
    logger.remove()

    if settings.is_production:
        # Production: JSON format for log aggregation
        logger.add(
            sys.stdout,
            format="{message}",
            level=settings.LOG_LEVEL,
            serialize=True,
            backtrace=False,
            diagnose=False,
        )
    else:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stdout,
            format=log_format,
            level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    redis_logger = logging.getLogger("redis")
    redis_logger.handlers = [InterceptHandler()]
    redis_logger.setLevel(logging.INFO)
    redis_logger.propagate = False

    logger.info(f"Logging configured for {settings.ENVIRONMENT} environment")


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance

    Args:
        name: Optional logger name for context

    Returns:
        logger: Configured loguru logger
    """
    if name:
        return logger.bind(logger_name=name)
    return logger

"""Logging configuration for subs-count.

The package logs through loguru and stays silent until ``setup_logging`` is
called by the host application.
"""

import logging
import sys

from loguru import logger

from .settings import get_settings

PACKAGE_NAME = "subs_count"


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward loguru."""

    def emit(self, record):
        # Get corresponding loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str | None = None) -> None:
    """Configure loguru logging and enable the package logger.

    Args:
        log_level: Log level to use. Defaults to ``Settings.log_level``.
    """
    log_level = (log_level or get_settings().log_level).upper()

    logger.remove()
    logger.add(sys.stderr, level=log_level, colorize=True)
    logger.enable(PACKAGE_NAME)

    logger.info(f"Log level set to: {log_level}")

    # Unhandled failures of deferred tasks are reported by asyncio through stdlib logging
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("asyncio", "concurrent.futures"):
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False
        # stdlib logging has no TRACE level
        logging_logger.setLevel("DEBUG" if log_level == "TRACE" else log_level)

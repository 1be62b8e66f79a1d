"""
logging_config.py — Centralized Logging Configuration

Sets up Loguru as the single logging backend and intercepts Python's
stdlib logging module, so getLogger() calls in helpers and third-party
libraries land in the same sinks as loguru's logger.

Business Rules:
- JSON lines in production (APP_ENV=production), colored text otherwise
- LOG_LEVEL env var sets the minimum level (default INFO)
- Every line carries a request_id: the one bound by the middleware in
  main.py, or "-" for startup and other work outside a request
- Production also keeps a rotating file: 50MB files, 7-day retention

Called by: wheelsglass/main.py (lifespan startup)
"""

import logging
import os
import sys

from loguru import logger

LOG_FILE = "/var/log/wheelsglass/app.log"
NO_REQUEST = "-"


def setup_logging() -> None:
    """Configure Loguru and intercept stdlib logging. Call once at startup."""
    logger.remove()
    logger.configure(extra={"request_id": NO_REQUEST})

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    is_production = os.getenv("APP_ENV", "development").lower() == "production"

    if is_production:
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
        logger.add(
            LOG_FILE,
            level=log_level,
            rotation="50 MB",
            retention="7 days",
            compression="gz",
            serialize=True,
        )
    else:
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "[{extra[request_id]}] {message}"
            ),
            colorize=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, production=is_production)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk past stdlib logging frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )

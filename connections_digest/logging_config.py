"""
logging_config.py — Loguru setup for the digest process

Every `digest.*` module logs through stdlib `logging`; those records are
forwarded to Loguru so the scheduler, the CLI and the services share one
sink. Records emitted while a ServiceJob runs carry `service_job` and
`service_job_id` in their extras.

Business Rules:
- ENVIRONMENT=production writes JSON lines (extras included)
- Any other environment writes a colored line with the job name prefixed
- The level comes from settings.log_level (LOG_LEVEL in .env)

Called by: scheduler.py, scripts/run_digest.py
Depends on: config.py
"""

import logging
import sys
from contextlib import contextmanager

from loguru import logger

from .config import settings

_DEV_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[service_job]}</magenta> | "
    "<cyan>{name}</cyan> | "
    "{message}"
)

_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler.executors", "sqlalchemy.engine")


def setup_logging() -> None:
    """Replace Loguru's default sink and route stdlib logging into it."""
    logger.remove()
    logger.configure(extra={"service_job": "-", "service_job_id": None})
    level = settings.log_level.upper()

    if settings.is_production:
        logger.add(sys.stdout, level=level, format="{message}", serialize=True)
    else:
        logger.add(sys.stdout, level=level, format=_DEV_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_LoguruForwarder()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Digest logging ready at {level}")


@contextmanager
def job_log_context(job):
    """Tag every record inside the block with the running ServiceJob."""
    with logger.contextualize(service_job=job.name, service_job_id=job.id):
        yield


class _LoguruForwarder(logging.Handler):
    """Hands a stdlib LogRecord to Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # walk past logging's own frames
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

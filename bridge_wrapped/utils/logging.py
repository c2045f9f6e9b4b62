"""
Structured logging for the aggregation pipeline and API, using structlog.

Provider adapters log with ``provider=`` and the aggregator binds
``address=``/``year=`` for the duration of a request via ``log_context``.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any, Optional

import structlog
from structlog.typing import Processor

# Per-request INFO lines from the HTTP stack drown out provider summaries
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logging(log_level: str = "INFO", json_logs: Optional[bool] = None) -> None:
    """
    Configure structlog and stdlib logging once per process.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING...)
        json_logs: Force JSON (True) or console (False) output; by default
            JSON is used unless stderr is a terminal
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Logger bound to the calling module's name."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(module=name)
    return logger


def log_context(**kwargs: Any) -> AbstractContextManager:
    """Bind key/values to every log line emitted inside the block."""
    return structlog.contextvars.bound_contextvars(**kwargs)

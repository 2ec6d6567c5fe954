"""Logging for the checkout service.

structlog renders every event; stdlib logging is only the sink (stdout, plus a
rotating file when ``LOG_FILE`` is set). Each HTTP request runs inside
``request_context``, so every event logged while serving it carries the same
``request_id`` as the ``X-Request-ID`` response header.
"""

import logging
import logging.handlers
import re
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from ordering import settings

REQUEST_ID_HEADER = "X-Request-ID"

_LEVELS = {"production": "INFO", "staging": "INFO", "development": "DEBUG", "test": "WARNING"}
_QUIET_LOGGERS = ("protean", "stripe", "pymongo", "urllib3")
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def get_log_level() -> str:
    return settings.log_level() or _LEVELS.get(settings.environment(), "INFO")


def _stdlib_handlers(log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )
    return handlers


def configure_logging() -> None:
    """Route structlog through stdlib logging at the environment's level."""
    level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = _stdlib_handlers(settings.log_file())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.environment() in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=4),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def request_id_from(header_value: str | None) -> str:
    """Use the caller's request id when it is safe to log, else mint one."""
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return uuid.uuid4().hex


@contextmanager
def request_context(request_id: str, **fields) -> Iterator[str]:
    """Bind ``request_id`` (and ``fields``) to every log event inside the block."""
    with structlog.contextvars.bound_contextvars(request_id=request_id, **fields):
        yield request_id

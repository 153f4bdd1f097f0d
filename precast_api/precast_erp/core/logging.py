from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Optional, Union

# Set per request by the correlation middleware in api.main
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | %(message)s"

# Chatty third-party loggers kept at WARNING unless the root level is DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "multipart")


class LoggingContextFilter(logging.Filter):
    """Stamp each record with the current request's correlation id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Install the service's handlers on the root logger.

    Always logs to stdout; when `log_file` is given (e.g. logs/precast.log) the
    same records are appended to that file as well. Calling it again replaces
    the handlers instead of stacking them.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(stream=sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = logging.Formatter(fmt=LOG_FORMAT)
    context_filter = LoggingContextFilter()
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

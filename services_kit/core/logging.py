"""Root logger setup for the CLI and for applications embedding the toolkit.

Records can carry a correlation id (see ``correlation_context``) so that
the log lines of one evaluation or one token refresh can be grepped
together. The id lives in a context variable, so concurrent asyncio
tasks keep their own.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def normalize_log_level(log_level: str) -> str:
    """Extract the level name, ignoring trailing comments; unknown -> INFO."""
    words = log_level.split()
    if words and words[0].upper() in VALID_LOG_LEVELS:
        return words[0].upper()
    return "INFO"


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Keep httpx/httpcore chatter out of the output unless running at DEBUG."""
    level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for name in NOISY_HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level)


@contextmanager
def correlation_context(correlation_id: str) -> Iterator[None]:
    """Attach ``correlation_id`` to records logged inside the block."""
    token = _correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Copies the active correlation id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = _correlation_id.get()
        if correlation_id is not None:
            record.correlation_id = correlation_id
        return True


class CorrelationFormatter(logging.Formatter):
    """Prefixes the message with the first 8 characters of the correlation id."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if not correlation_id:
            return super().formatMessage(record)
        message = record.message
        record.message = f"[{correlation_id[:8]}] {message}"
        try:
            return super().formatMessage(record)
        finally:
            record.message = message


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Reports INFO records of the given logger prefixes as DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO and record.name.startswith(self.prefixes):
            record.levelno = logging.DEBUG
            record.levelname = "DEBUG"
        return True


def configure_root_logging(log_level: str = "INFO") -> logging.Logger:
    """Install a single stderr handler on the root logger.

    Safe to call more than once; previous handlers are replaced.
    """
    level = normalize_log_level(log_level)

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    handler.setFormatter(CorrelationFormatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    set_noisy_http_logger_levels(level)
    return root

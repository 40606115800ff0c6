"""
Logging for dropsearch.

Every record carries the id of the HTTP request it was emitted under
(`rid=-` outside a request, e.g. during the startup sync or from the CLI).

Usage:
    from app.logging_config import get_logger
    logger = get_logger(__name__)
"""
import logging
import sys

from app.logging_utils import request_id_ctx

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | rid=%(request_id)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "elastic_transport")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get("-")
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Send application logs to stdout at `level`.

    Safe to call more than once; the root handler is only installed once.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.addFilter(RequestIdFilter())
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

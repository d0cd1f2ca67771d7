"""Centralized JSON logging for the orders service.

Every record goes through one stdout handler formatted by
``python-json-logger`` and stamped with the current request id, so log
lines from the API, the workflow and the catalog client can be correlated.
"""

import logging
import sys

from pythonjsonlogger import jsonlogger

from gateway.logging_filters import RequestIdFilter

from . import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger with a JSON stdout handler.

    Calling it again replaces the handler instead of stacking a new one.

    Args:
        level: Log level name; defaults to ``settings.LOG_LEVEL``. Unknown
            names fall back to INFO.
    """
    numeric_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_orders_json", False):
            root.removeHandler(h)
    handler._orders_json = True
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Reduce verbosity from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

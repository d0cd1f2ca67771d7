"""Logging filters for enriching log records with request context.

This module provides a logging filter that injects the current request id
into log records using the ContextVar set by the gateway middleware. Adding
the filter to a handler enables per-request correlation in logs without
modifying individual log statements.
"""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    If no request is in progress a hyphen ("-") is used as a placeholder so
    formatters can reliably reference ``%(request_id)s``.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True

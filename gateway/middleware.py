"""Middleware that assigns and propagates a request identifier.

This module provides small ASGI middlewares for the orders API:

- ``RequestIdMiddleware`` ensures every incoming HTTP request receives a
  request identifier. The identifier is read from the incoming
  ``X-Request-ID`` header when provided by the client, or generated
  server-side (UUIDv4) otherwise. It is stored on ``request.state`` and in
  a context variable so code running downstream (the catalog client, log
  filters) can access it without passing the value explicitly. The
  response carries the same id in the ``X-Request-ID`` header.
- ``ApiSizeLimitMiddleware`` rejects request bodies that announce a
  ``Content-Length`` above the configured limit.
"""

import contextvars
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")

logger = logging.getLogger("gateway")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Set a per-request identifier and echo it on the response.

    Attributes:
        HEADER (str): Incoming header that may contain a client-provided id.
        RESPONSE_HEADER (str): Header added to outgoing responses.
    """

    HEADER = "X-Request-ID"
    RESPONSE_HEADER = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(self.HEADER) or str(uuid.uuid4())
        request.state.request_id = rid
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = await call_next(request)
            logger.info(
                "request handled",
                extra={"path": request.url.path, "method": request.method, "status_code": response.status_code},
            )
        finally:
            REQUEST_ID_CTX.reset(token)
        response.headers[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware(BaseHTTPMiddleware):
    """Answer 413 when ``Content-Length`` exceeds ``max_bytes``."""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        clen = request.headers.get("content-length")
        if clen and clen.isdigit() and int(clen) > self.max_bytes:
            return JSONResponse({"status": 413, "message": "PAYLOAD_TOO_LARGE"}, status_code=413)
        return await call_next(request)

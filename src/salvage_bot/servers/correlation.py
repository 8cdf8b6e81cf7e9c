"""Per-request correlation IDs for the callback server.

The ID lands in ``request.state.correlation_id`` (the callback handler passes it
into the linking logs) and is echoed back in the ``X-Correlation-ID`` response
header.  A reverse proxy may supply its own ID; it is reused when short and
printable, otherwise a fresh ``uuid4().hex`` is minted.
"""

from __future__ import annotations

import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

_HEADER_NAME = "X-Correlation-ID"
_MAX_LEN = 64
_logger = logging.getLogger("salvage-bot.correlation")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that attaches a per-request correlation ID."""

    def __init__(self, app: ASGIApp, header_name: str = _HEADER_NAME) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get(self.header_name) or ""
        if supplied and len(supplied) <= _MAX_LEN and supplied.isprintable():
            correlation_id = supplied
        else:
            correlation_id = uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        _logger.debug(
            "%s %s correlation_id=%s", request.method, request.url.path, correlation_id
        )
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response

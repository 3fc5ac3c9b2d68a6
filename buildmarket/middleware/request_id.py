"""
BuildMarket Backend: Request ID Middleware
===========================================

What:  Assigns a correlation ID to each request and echoes it in X-Request-ID.
How:   Reuses the client's X-Request-ID when present (the mobile app sends
       one per user action), otherwise generates a short UUID. The ID lives
       in a ContextVar for loggers and in request.state for handlers.

Client IDs end up in log lines and response headers, so only short
alphanumeric/hyphen values are accepted; anything else is replaced.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

MAX_REQUEST_ID_LENGTH = 64
REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9-]{1,%d}" % MAX_REQUEST_ID_LENGTH)

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


def resolve_request_id(header_value: str | None) -> str:
    """The client's ID if it is safe to log, otherwise a fresh one."""
    if header_value and REQUEST_ID_PATTERN.fullmatch(header_value):
        return header_value
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response

"""
BuildMarket Backend: Request Logging Middleware
================================================

What:  One access log line per request with status, duration and request ID.
Who:   Logger "buildmarket.access"; /health is skipped because load
       balancers poll it every few seconds.

What we log vs what we DON'T log (privacy):
    Log:       method, path, status, duration, client IP, request ID
    Don't log: request bodies (import codes, buyer names), query strings
               (buyer_id), headers (X-Admin-Key)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from buildmarket.middleware.request_id import request_id_var

logger = logging.getLogger("buildmarket.access")

SKIPPED_PATHS = {"/health"}


def client_ip_of(request: Request) -> str:
    return getattr(request.client, "host", "unknown") if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration for each request.

    Level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = client_ip_of(request)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response

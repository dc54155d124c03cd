"""
AI Clipboard Backend — Request Logging Middleware
===================================================

What:  One access-log line per HTTP request: method, path, status, duration,
       request ID and client address.
Why:   Captures wait on a remote provider, so latency and error rates per
       endpoint are the first thing to look at when users report slowness.
How:   Measures time around call_next() and picks the level from the status
       code (5xx ERROR, 4xx WARNING, otherwise INFO). /health is not logged.
Who:   Applied to every request via Starlette middleware.
When:  Inside RequestIDMiddleware, so `request_id_var` is already set.

Log Line:
    2024-01-15T12:00:00 [INFO] aiclipboard.access: POST /api/items 201 1523.4ms [a1b2c3d4] from 10.0.0.7

    The same fields are attached as `extra` (request_id, method, path,
    status, duration_ms, client_ip) for handlers that emit structured
    records.

Levels:
    429 quota_exceeded and 403 not_allowed are expected on the free tier and
    log at WARNING. Only 5xx responses log at ERROR.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, client IP, request ID
    ❌ Don't log: request bodies (clipboard contents, API keys in settings
       updates), query strings, headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from aiclipboard.middleware.request_id import request_id_var

logger = logging.getLogger("aiclipboard.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Writes an access-log line for each request.

    Excluded paths:
        /health is polled by load balancers and would drown the log.

    Timing:
        Duration runs from middleware entry until the response object is
        returned. For export downloads it does not include streaming the
        body to the client.

    Uvicorn's own access log can be switched off (`--no-access-log`); this
    one carries the request ID and the status-based level.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response

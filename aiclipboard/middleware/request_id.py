"""
AI Clipboard Backend — Request ID Middleware
==============================================

What:  Assigns a short correlation ID to each request and echoes it in the
       X-Request-ID response header.
Why:   A capture can log from several layers (route, clipboard service,
       provider adapter, gate). A shared ID ties those lines to one request.
How:   Uses the client's X-Request-ID when present, otherwise the first eight
       characters of a UUID4. The value is stored in a ContextVar for loggers
       and exception handlers, and in request.state for route handlers.
Who:   Applied to every request via Starlette middleware.
When:  Outermost of the project's own middleware, so the ID exists before
       the access logger or any handler runs.

Where the ID shows up:
    - The X-Request-ID response header, including handled error responses
    - The `request_id` field of every JSON error body (see main.py handlers)
    - The access log line written by RequestLoggingMiddleware

    A user reporting a rejected request can quote the ID from the error body,
    and the matching server lines are one grep away.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on one event loop each see their own ID.
# Empty outside a request (startup logs, background tasks).
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attaches a correlation ID to each request.

    Behavior:
        1. Read X-Request-ID from the client, if it sent a non-empty one
        2. Otherwise generate an 8-character ID from a UUID4
        3. Store it in `request_id_var` for loggers and exception handlers
        4. Store it in `request.state.request_id` for route handlers
        5. Return it in the X-Request-ID response header

    Client-provided IDs:
        The mobile client can tag a capture before sending it. Reusing that
        tag lets a single ID follow the capture from the device to the
        server logs.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # An empty header counts as absent
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        # Also set on error responses built by the exception handlers
        response.headers["X-Request-ID"] = rid
        return response

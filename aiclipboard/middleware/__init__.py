# Middleware package init
"""
AI Clipboard Backend — Middleware Package
===========================================

What:  Cross-cutting concerns applied to every request.
Why:   Correlation IDs and access logging belong to every route, so they
       live here instead of in each handler.

Middleware Chain:
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    The order is reversed for responses, so the request ID is already in the
    ContextVar when the access log line is written, and the X-Request-ID
    header is added on the way out.
"""

# Middleware package init
"""
Penpost Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Access Log] → [Rate Limit] → [GZip] → Route

    1. CORS is Starlette's own; outermost so every response it sees,
       429s included, gets the allow-origin headers
    2. Request ID sets the correlation ID used by every later log line
    3. Access Log records method, path, status and duration with that ID
    4. Rate Limit rejects over-limit clients before any route work
    5. GZip is Starlette's own

    Responses pass back through the same chain in reverse, which is where
    X-Request-ID is added and the duration is measured.
"""

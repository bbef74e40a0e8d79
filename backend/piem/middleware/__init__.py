# Middleware package init
"""
PIEM Backend — Middleware Package
==================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Security Headers] → [Session]
            → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every later log line can carry it
    - Logging measures the full round-trip, including inner middleware
    - Security headers are stamped on every response, errors included
    - Session decodes the signed cookie before auth dependencies read it
"""

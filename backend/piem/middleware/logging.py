"""
PIEM Backend — Access Log Middleware
=====================================

What:  One `piem.access` line per request naming who touched which resource.
How:   After the response is produced, the session (filled in by
       SessionMiddleware further down the stack) tells us the caller; the
       first path segment tells us the resource collection.
When:  Inside RequestIDMiddleware, so the request id is already set.

Line format:
    PUT /categories/66f0… 403 4.2ms user=66ef… resource=categories [rid]

What we log vs what we DON'T log:
    ✅ method, path, status, duration, caller id, resource, request id
    ❌ request bodies (user emails, supplier contacts), cookies, client IP
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from piem.middleware.request_id import request_id_var
from piem.security import SESSION_USER_KEY

logger = logging.getLogger("piem.access")

RESOURCES = frozenset({"users", "categories", "inventory", "supplier"})
ANONYMOUS = "anonymous"


def session_user(request: Request) -> Optional[str]:
    """User id carried by the session cookie, if a session is installed and set."""
    session = request.scope.get("session") or {}
    return session.get(SESSION_USER_KEY)


def resource_of(path: str) -> Optional[str]:
    segment = path.strip("/").split("/", 1)[0]
    return segment if segment in RESOURCES else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        status = response.status_code
        path = request.url.path
        # Passing health checks are not logged
        if path == "/health" and status < 400:
            return response

        caller = session_user(request) or ANONYMOUS
        resource = resource_of(path)
        rid = request_id_var.get("")
        level = logging.ERROR if status >= 500 else logging.WARNING if status >= 400 else logging.INFO

        logger.log(
            level,
            "%s %s %d %.1fms user=%s resource=%s [%s]",
            request.method,
            path,
            status,
            elapsed_ms,
            caller,
            resource or "-",
            rid,
            extra={
                "request_id": rid,
                "user_id": caller,
                "resource": resource,
                "status": status,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response

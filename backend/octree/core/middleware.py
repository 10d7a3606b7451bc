"""
HTTP middleware: request logging with correlation ids, and response hardening headers.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from octree.core.logging import get_correlation_id, log_request, log_response, set_correlation_id, set_session_id

_SESSION_PATH_RE = re.compile(r"/api/v1/sessions/(?P<session_id>[^/]+)")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags every log record of a request with its correlation id and editor session."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        m = _SESSION_PATH_RE.match(request.url.path)
        set_session_id(m.group("session_id") if m else None)
        log_request(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            log_response(request, status_code, (time.perf_counter() - started) * 1000)

        response.headers["X-Correlation-ID"] = correlation_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        # Session state and compiled PDFs change on every edit.
        if request.url.path.startswith("/api/v1/sessions"):
            response.headers["Cache-Control"] = "no-store"
        correlation_id = get_correlation_id()
        if correlation_id and "X-Correlation-ID" not in response.headers:
            response.headers["X-Correlation-ID"] = correlation_id
        return response

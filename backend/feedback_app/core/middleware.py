"""
Student Feedback System - HTTP Middleware
Request ids, access logging and response security headers
"""

import time
from typing import Callable, Set
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from feedback_app.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


# Health checks and API docs are not access-logged
QUIET_PATHS: Set[str] = {
    "/",
    "/health",
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}

SLOW_REQUEST_MS = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (taken from X-Request-ID when the client
    sends one) and logs the outcome through `logger.log_request`.

    Responses carry X-Request-ID and X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        method, path = request.method, request.url.path
        quiet = path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"{method} {path} raised {type(exc).__name__} after {elapsed:.2f}ms",
                exc_info=True,
                extra={"event_type": "http_request_error", "http_method": method, "http_path": path},
            )
            raise
        finally:
            set_user_id("")

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"

        if not quiet:
            client_ip = request.client.host if request.client else "unknown"
            logger.log_request(method, path, response.status_code, elapsed, client_ip=client_ip)
            if elapsed > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {method} {path} took {elapsed:.2f}ms")

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds browser hardening headers to every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

"""
User Service — Request Logging Middleware
==========================================

What:  One access-log line per HTTP request.
How:   Times the request from middleware entry to response, then logs method,
       path, status, duration, request ID and client address. The level
       follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
When:  Inside RequestIDMiddleware, so the request ID is already set.

Never logged: request bodies (names, emails, photos) and headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from user_service.middleware.request_id import request_id_var

logger = logging.getLogger("user_service.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured information about each HTTP request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        # request.client is None under ASGI test transports
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        try:
            response = await call_next(request)
        except Exception:
            # RequestIDMiddleware answers with the 500 envelope; log it as one
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._log_request(method, path, 500, duration_ms, rid, client_ip)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._log_request(method, path, response.status_code, duration_ms, rid, client_ip)

        return response

    @staticmethod
    def _log_request(
        method: str,
        path: str,
        status: int,
        duration_ms: float,
        rid: str,
        client_ip: str,
    ) -> None:
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

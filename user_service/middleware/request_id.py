"""
User Service — Request ID Middleware
=====================================

What:  Tags every request with a short correlation ID and echoes it back in
       the `X-Request-ID` response header, error responses included.
How:   Reuses the client's X-Request-ID when present, otherwise generates
       one. The value is kept in a ContextVar so loggers and exception
       handlers can include it without passing it around.
When:  Outermost middleware (runs before logging and CORS).
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# Coroutine-local: concurrent requests on one event loop each see their own
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


def internal_error_body(rid: str) -> Dict[str, str]:
    """Envelope for errors that no domain handler claimed."""
    return {
        "error": "internal_server_error",
        "message": "An unexpected error occurred.",
        "request_id": rid,
    }


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header if sent
        2. Otherwise generate the first 8 characters of a UUID4
        3. Store it in request_id_var and request.state.request_id
        4. Turn any exception escaping the app into the 500 envelope
        5. Add the ID to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER, str(uuid.uuid4())[:8])

        request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        except Exception as e:
            # What: Non-domain exceptions bypass the app's handlers here
            # Why: The Exception handler in main.py runs in ServerErrorMiddleware,
            #      outside this middleware, so its response would lose the header
            logger.error("[%s] Unexpected error: %s", rid, str(e), exc_info=True)
            response = JSONResponse(status_code=500, content=internal_error_body(rid))

        response.headers[REQUEST_ID_HEADER] = rid

        return response

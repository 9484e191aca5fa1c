# Middleware package init
"""
User Service — Middleware Package
==================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Request ID: correlation ID for logs, error bodies and the response
    2. Logging: one access line per request, tagged with the request ID
    3. CORS: FastAPI's CORSMiddleware, restricted to the configured origin
"""

"""
Middleware for the acting-user context
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import UUID
import logging
import time

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


class UserContextMiddleware(BaseHTTPMiddleware):
    """
    Validates the X-User-Id header when present and stores it on
    request.state.user_id. Endpoints that need a user still declare the
    header dependency; this only rejects malformed ids early and logs
    who did what.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None

        user_header = request.headers.get(USER_HEADER)
        if user_header:
            try:
                request.state.user_id = UUID(user_header)
            except ValueError:
                return JSONResponse(
                    content={"detail": f"Invalid {USER_HEADER} format. Must be a valid UUID",
                             "error": "ValidationError"},
                    status_code=status.HTTP_400_BAD_REQUEST
                )

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.debug(
            f"{request.method} {request.url.path} user={request.state.user_id} "
            f"status={response.status_code} {elapsed_ms:.1f}ms"
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers for production
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response

"""Error handler middleware with PII redaction."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shelf.config import settings
from shelf.utils.logging_utils import redact_email, redact_ip

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Catch exceptions no handler dealt with.

    Domain errors never reach this point; they are rendered by the
    ``ShelfError`` exception handler in ``shelf.main``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            client_host = request.client.host if request.client else None
            logger.error(
                "Unhandled %s on %s %s | user=%s | ip=%s | request_id=%s",
                type(exc).__name__,
                request.method,
                request.url.path,
                redact_email(getattr(request.state, "user_email", None)),
                redact_ip(client_host),
                getattr(request.state, "request_id", "unknown"),
                exc_info=exc,
            )

            if settings.DEBUG:
                content = {
                    "detail": "An error occurred processing your request",
                    "code": "internal_error",
                    "error": str(exc),
                    "type": type(exc).__name__,
                }
            else:
                content = {
                    "detail": "An unexpected error occurred. Please try again later.",
                    "code": "internal_error",
                }

            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

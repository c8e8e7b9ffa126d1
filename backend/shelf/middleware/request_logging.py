"""Request/response logging middleware."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shelf.utils.logging_utils import redact_email, redact_ip

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with an id, timing and redacted caller details."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"Request failed | id={request_id} | method={method} | path={path} | "
                f"duration={duration_ms}ms | ip={redact_ip(client_host)} | "
                f"error={type(e).__name__}"
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        # Set by get_current_user once the route authenticated the caller
        user_email = getattr(request.state, "user_email", None)
        logger.info(
            f"Request completed | id={request_id} | method={method} | path={path} | "
            f"status={response.status_code} | duration={duration_ms}ms | "
            f"user={redact_email(user_email)} | ip={redact_ip(client_host)}"
        )

        response.headers["X-Request-ID"] = request_id
        return response

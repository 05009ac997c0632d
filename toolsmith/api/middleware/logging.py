"""
Request/response logging with timing.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, client, status and duration; sets X-Process-Time."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, "request_id", "-")

        logger.info(
            f"[{request_id}] Request: {request.method} {request.url.path} "
            f"from {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Error processing {request.method} {request.url.path} "
                f"({duration_ms:.2f}ms): {e}",
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[{request_id}] Response: {response.status_code} ({duration_ms:.2f}ms) "
            f"for {request.method} {request.url.path}"
        )
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
        return response

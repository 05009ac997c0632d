"""
Request body size limit.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from toolsmith.core.config import settings

logger = logging.getLogger(__name__)


class BodySizeMiddleware(BaseHTTPMiddleware):
    """Rejects POST/PUT/PATCH bodies over MAX_REQUEST_BODY_SIZE with a 413 envelope."""

    def __init__(self, app, max_size: Optional[int] = None):
        super().__init__(app)
        self.max_size = max_size if max_size is not None else settings.MAX_REQUEST_BODY_SIZE

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            body = await request.body()
            if len(body) > self.max_size:
                request_id = getattr(request.state, "request_id", "unknown")
                logger.warning(
                    f"[{request_id}] Request body too large: {len(body)} bytes (max: {self.max_size})"
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "success": False,
                        "error": {
                            "error_code": "PAYLOAD_TOO_LARGE",
                            "message": f"Request body exceeds maximum size of {self.max_size} bytes",
                            "details": {"request_id": request_id},
                        },
                    },
                )
        return await call_next(request)

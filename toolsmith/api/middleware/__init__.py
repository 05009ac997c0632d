"""HTTP middleware."""

from toolsmith.api.middleware.body_size import BodySizeMiddleware
from toolsmith.api.middleware.logging import LoggingMiddleware
from toolsmith.api.middleware.request_id import RequestIDMiddleware

__all__ = ["BodySizeMiddleware", "LoggingMiddleware", "RequestIDMiddleware"]

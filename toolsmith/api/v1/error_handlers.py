"""Error handlers producing the outcome envelope for failures."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from toolsmith.api.v1.exceptions import APIError


logger = logging.getLogger(__name__)


def _failure(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )


def _collect(errors) -> list:
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle typed API errors."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return _failure(exc.status_code, exc.to_dict())


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle FastAPI validation errors."""
    return _failure(
        status.HTTP_400_BAD_REQUEST,
        {
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": _collect(exc.errors())},
        },
    )


async def pydantic_error_handler(
    request: Request,
    exc: PydanticValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    return _failure(
        status.HTTP_400_BAD_REQUEST,
        {
            "error_code": "VALIDATION_ERROR",
            "message": "Data validation failed",
            "details": {"errors": _collect(exc.errors())},
        },
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors."""
    logger.exception(f"Unhandled error: {exc}")
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "error_code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

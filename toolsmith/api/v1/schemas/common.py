"""Common schema types for API responses."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def ok(data: Any = None) -> Dict[str, Any]:
    """Success envelope."""
    return {"success": True, "data": data}


class ErrorBody(BaseModel):
    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Failure envelope."""

    success: bool = False
    error: ErrorBody

    model_config = {"json_schema_extra": {
        "example": {
            "success": False,
            "error": {
                "error_code": "SUBDOMAIN_CONFLICT",
                "message": "The address 'resume-builder' is already in use",
                "details": {"slug": "resume-builder", "suggested_names": ["Resume Builder Pro"]},
            },
        }
    }}


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

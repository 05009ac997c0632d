"""Typed errors shared by the services and the HTTP layer."""

from typing import Any, Dict, List, Optional


class APIError(Exception):
    """Base class for API errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(APIError):
    """Request validation failed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if details is None:
            details = {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(
            error_code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            error_code=f"{resource_type.upper()}_NOT_FOUND",
            message=f"{resource_type.title()} '{resource_id}' not found",
            status_code=404,
            details=details,
        )


class ConflictError(APIError):
    """Public address already claimed by another active deployment."""

    def __init__(
        self,
        slug: str,
        suggested_names: List[str],
        message: Optional[str] = None,
    ):
        self.slug = slug
        self.suggested_names = suggested_names
        super().__init__(
            error_code="SUBDOMAIN_CONFLICT",
            message=message or f"Subdomain '{slug}' is already in use",
            status_code=409,
            details={"slug": slug, "suggested_names": suggested_names},
        )


class AuthError(APIError):
    """Missing or invalid caller identity."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            error_code="AUTH_REQUIRED",
            message=message,
            status_code=401,
        )


class PermissionDeniedError(APIError):
    """Caller is identified but may not perform this operation."""

    def __init__(self, message: str = "You are not allowed to do that"):
        super().__init__(
            error_code="PERMISSION_DENIED",
            message=message,
            status_code=403,
        )


class EntitlementError(APIError):
    """Caller's package does not cover the tool's required tier."""

    def __init__(self, required_package: Dict[str, Any], message: Optional[str] = None):
        self.required_package = required_package
        super().__init__(
            error_code="ENTITLEMENT_REQUIRED",
            message=message or f"This tool requires the {required_package.get('display_name') or required_package.get('tier')} package",
            status_code=403,
            details={"required_package": required_package},
        )


class QuotaExceededError(APIError):
    """Caller exhausted their rolling usage quota."""

    def __init__(self, limit: int, current_usage: int):
        self.limit = limit
        self.current_usage = current_usage
        super().__init__(
            error_code="QUOTA_EXCEEDED",
            message=f"Daily request limit reached ({current_usage}/{limit})",
            status_code=429,
            details={"limit": limit, "current_usage": current_usage},
        )


class UpstreamGenerationError(APIError):
    """Completion service failed, timed out or returned unusable output."""

    TIMEOUT = "timeout"
    REJECTED = "rejected"
    MALFORMED = "malformed"

    def __init__(
        self,
        failure_kind: str,
        message: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        self.failure_kind = failure_kind
        self.session_id = session_id
        details: Dict[str, Any] = {"failure_kind": failure_kind}
        if session_id:
            details["session_id"] = session_id
        super().__init__(
            error_code="UPSTREAM_GENERATION_FAILED",
            message=message or f"AI generation failed ({failure_kind})",
            status_code=502,
            details=details,
        )

    def with_session(self, session_id: str) -> "UpstreamGenerationError":
        return UpstreamGenerationError(self.failure_kind, self.message, session_id=session_id)


class PersistenceError(APIError):
    """Storage layer failed to record a change."""

    def __init__(self, message: str = "Failed to persist data", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code="PERSISTENCE_ERROR",
            message=message,
            status_code=500,
            details=details,
        )


class MaterializationError(APIError):
    """Public bundle could not be written or removed."""

    def __init__(self, message: str = "Failed to materialize bundle", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code="MATERIALIZATION_ERROR",
            message=message,
            status_code=500,
            details=details,
        )

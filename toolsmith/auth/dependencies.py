"""
FastAPI dependencies for caller identity.

Definition and publish routes require an identity; the runtime surface
takes an optional one and lets the access policy decide.
"""
from typing import Optional
import logging

from fastapi import Depends, Request

from toolsmith.api.v1.exceptions import AuthError, PermissionDeniedError
from toolsmith.auth.models import Identity
from toolsmith.auth.token_service import TokenService
from toolsmith.core.config import settings

logger = logging.getLogger(__name__)


def get_token_service() -> TokenService:
    return TokenService()


def _bearer(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def get_optional_identity(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Optional[Identity]:
    """Verified identity or None. Never raises."""
    token = _bearer(request)
    if token is None:
        return None
    identity = tokens.verify(token)
    if identity is None:
        client = request.client.host if request.client else "unknown"
        logger.debug(f"Invalid bearer token from {client}")
    return identity


async def require_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """Verified identity, or AuthError."""
    if identity is None:
        raise AuthError()
    return identity


async def require_config_admin(
    identity: Identity = Depends(require_identity),
) -> Identity:
    """Verified identity on the AI_CONFIG_ADMINS list (any identity when the list is empty)."""
    admins = settings.AI_CONFIG_ADMINS
    if admins and identity.subject_id not in admins:
        logger.warning(f"AI config publish refused for {identity.subject_id}")
        raise PermissionDeniedError("Only configuration administrators can publish AI settings")
    return identity

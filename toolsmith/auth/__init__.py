"""Caller identity boundary: bearer token in, verified subject id out."""

from toolsmith.auth.models import Identity
from toolsmith.auth.token_service import TokenService

__all__ = ["Identity", "TokenService"]

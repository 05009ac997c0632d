"""
Caller token signing and verification.

Format: tsk_v1_<subject>_<hex hmac-sha256(subject)>
The subject may itself contain underscores; the signature never does.
"""

import hashlib
import hmac
import logging
import re
from typing import Optional

from toolsmith.auth.models import Identity
from toolsmith.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "tsk_v1_"
_SUBJECT_RE = re.compile(r"^[A-Za-z0-9_.@\-]{1,100}$")


def get_token_display(token: str) -> str:
    """Display version of a token (first 12 + last 4 chars)."""
    if len(token) <= 16:
        return token
    return f"{token[:12]}...{token[-4:]}"


class TokenService:
    def __init__(self, secret: Optional[str] = None):
        self._secret = (secret or settings.AUTH_TOKEN_SECRET).encode()

    def _sign(self, subject_id: str) -> str:
        return hmac.new(self._secret, subject_id.encode(), hashlib.sha256).hexdigest()

    def issue(self, subject_id: str) -> str:
        if not _SUBJECT_RE.match(subject_id or ""):
            raise ValueError(f"Invalid subject id: {subject_id!r}")
        return f"{TOKEN_PREFIX}{subject_id}_{self._sign(subject_id)}"

    def verify(self, token: Optional[str]) -> Optional[Identity]:
        """Return the Identity for a valid token, None otherwise."""
        if not token or not token.startswith(TOKEN_PREFIX):
            return None
        body = token[len(TOKEN_PREFIX):]
        subject_id, sep, signature = body.rpartition("_")
        if not sep or not _SUBJECT_RE.match(subject_id):
            return None
        if not hmac.compare_digest(signature, self._sign(subject_id)):
            logger.debug(f"Rejected token {get_token_display(token)}: bad signature")
            return None
        return Identity(subject_id=subject_id)

"""Authentication data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """A verified caller. Issuance is external; only the subject id matters here."""
    subject_id: str
    verified: bool = True

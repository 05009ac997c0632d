"""Closed vocabularies shared by the ORM models and the domain services."""

from enum import Enum


class FieldType(str, Enum):
    """Supported form field types."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    EMAIL = "email"
    DATE = "date"

    @property
    def has_choices(self) -> bool:
        return self in CHOICE_FIELD_TYPES

    @classmethod
    def coerce(cls, value) -> "FieldType":
        """Clamp an arbitrary value to a supported type (unknown -> text)."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.TEXT


CHOICE_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})
SINGLE_CHOICE_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})


class AccessTier(str, Enum):
    """Access tier a Project declares for runtime generation."""
    PUBLIC = "public"
    REGISTERED = "registered"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"

    @property
    def level(self) -> int:
        return TIER_LEVELS[self]


TIER_LEVELS = {
    AccessTier.PUBLIC: 0,
    AccessTier.REGISTERED: 1,
    AccessTier.PREMIUM: 2,
    AccessTier.ENTERPRISE: 3,
}


class DeploymentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

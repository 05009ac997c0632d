"""
Entitlement models: packages, per-subject package grants, usage records.
"""
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.enums import AccessTier
from toolsmith.api.models.project import utcnow


class Package(Base):
    """A purchasable access package. `limits` holds {"daily_requests": int | None}."""

    __tablename__ = "packages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    tier: Mapped[str] = mapped_column(String(20), nullable=False, default=AccessTier.REGISTERED.value)
    limits: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def access_tier(self) -> AccessTier:
        return AccessTier(self.tier)

    @property
    def daily_request_limit(self) -> Optional[int]:
        return (self.limits or {}).get("daily_requests")

    def describe(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "display_name": self.display_name,
            "tier": self.tier,
        }

    def __repr__(self):
        return f"<Package {self.name} ({self.tier})>"


class UserPackage(Base):
    __tablename__ = "user_packages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    package_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("packages.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    package = relationship("Package", lazy="joined")


class UsageEvent(Base):
    """One counted runtime generation for a subject."""

    __tablename__ = "usage_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[str] = mapped_column(String(100), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tool_sessions.id", ondelete="CASCADE"), nullable=True
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_usage_subject_time", "subject_id", "occurred_at"),
    )

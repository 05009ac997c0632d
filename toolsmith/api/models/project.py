"""
Project model for toolsmith.

A Project is an author's multi-step form definition plus its AI behaviour
configuration. Steps, Fields and Choices are owned transitively.
"""
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.enums import AccessTier


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """Tool definition root."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    ai_role: Mapped[Optional[str]] = mapped_column(String(200))
    ai_persona_description: Mapped[Optional[str]] = mapped_column(Text)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    header_title: Mapped[Optional[str]] = mapped_column(String(200))
    header_subtitle: Mapped[Optional[str]] = mapped_column(String(300))

    access_tier: Mapped[str] = mapped_column(String(20), nullable=False, default=AccessTier.PUBLIC.value)
    required_package_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True
    )

    # Null until a subdomain is reserved or the project is first published
    subdomain: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    deployed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    steps: Mapped[List["Step"]] = relationship(
        "Step",
        back_populates="project",
        order_by="Step.step_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_projects_owner_updated", "owner_id", "updated_at"),
    )

    @property
    def tier(self) -> AccessTier:
        return AccessTier(self.access_tier)

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": str(self.id),
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "ai_role": self.ai_role,
            "ai_persona_description": self.ai_persona_description,
            "system_prompt": self.system_prompt,
            "header_title": self.header_title,
            "header_subtitle": self.header_subtitle,
            "access_tier": self.access_tier,
            "required_package_id": str(self.required_package_id) if self.required_package_id else None,
            "subdomain": self.subdomain,
            "deployed": self.deployed,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_tree_dict(self):
        """to_dict plus the loaded steps, fields and choices."""
        return {**self.to_dict(), "steps": [s.to_dict() for s in self.steps]}

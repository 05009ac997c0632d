"""
Deployment model.

At most one active Deployment exists per slug and per project. Both rules
are partial unique indexes, so the claim of an address is decided by the
storage layer at flush time.
"""
from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.enums import DeploymentStatus
from toolsmith.api.models.project import utcnow

_ACTIVE = text("status = 'active'")


class Deployment(Base):
    __tablename__ = "deployments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    slug: Mapped[str] = mapped_column(String(50), nullable=False)
    bundle_location: Mapped[Optional[str]] = mapped_column(Text)
    public_url: Mapped[str] = mapped_column(String(300), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DeploymentStatus.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    project = relationship("Project")

    __table_args__ = (
        Index(
            "uq_deployments_active_slug", "slug", unique=True,
            sqlite_where=_ACTIVE, postgresql_where=_ACTIVE,
        ),
        Index(
            "uq_deployments_active_project", "project_id", unique=True,
            sqlite_where=_ACTIVE, postgresql_where=_ACTIVE,
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == DeploymentStatus.ACTIVE.value

    def __repr__(self):
        return f"<Deployment {self.slug} ({self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "slug": self.slug,
            "bundle_location": self.bundle_location,
            "public_url": self.public_url,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

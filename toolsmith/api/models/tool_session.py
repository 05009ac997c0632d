"""
Runtime records: one ToolSession per end-user submission, one Response per
attributed field value. Both are append-only once written.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.project import utcnow


class ToolSession(Base):
    __tablename__ = "tool_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    subject_id: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    client_address: Mapped[Optional[str]] = mapped_column(String(64))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    # Null until the completion call succeeds
    ai_response: Mapped[Optional[str]] = mapped_column(Text)
    unattributed_inputs: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    responses: Mapped[List["Response"]] = relationship(
        "Response",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        return f"<ToolSession {self.id} project={self.project_id}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "subject_id": self.subject_id,
            "client_address": self.client_address,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "ai_response": self.ai_response,
            "completed": self.is_completed,
            "unattributed_inputs": self.unattributed_inputs or {},
            "responses": [r.to_dict() for r in self.responses],
        }


class Response(Base):
    __tablename__ = "responses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tool_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("steps.id", ondelete="CASCADE"), nullable=False, index=True
    )
    field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("fields.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    session = relationship("ToolSession", back_populates="responses")

    def to_dict(self):
        return {
            "step_id": str(self.step_id),
            "field_id": str(self.field_id),
            "value": self.value,
        }

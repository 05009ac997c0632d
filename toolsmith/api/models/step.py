"""Step model: an ordered section of a Project."""
from datetime import datetime
from typing import List, Optional
import uuid

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.project import utcnow


class Step(Base):
    __tablename__ = "steps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    page_title: Mapped[Optional[str]] = mapped_column(String(200))
    page_subtitle: Mapped[Optional[str]] = mapped_column(String(300))
    # 1..N, contiguous within the project (maintained by ordering.compact)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    project = relationship("Project", back_populates="steps")
    fields: Mapped[List["Field"]] = relationship(
        "Field",
        back_populates="step",
        order_by="Field.field_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Step {self.step_order}: {self.name}>"

    def to_dict(self, include_fields: bool = True):
        data = {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "name": self.name,
            "description": self.description,
            "page_title": self.page_title,
            "page_subtitle": self.page_subtitle,
            "step_order": self.step_order,
        }
        if include_fields:
            data["fields"] = [f.to_dict() for f in self.fields]
        return data

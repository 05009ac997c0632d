"""Field and Choice models."""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from toolsmith.core.database import Base
from toolsmith.api.models.enums import FieldType
from toolsmith.api.models.project import utcnow


class Field(Base):
    """One input definition within a Step."""

    __tablename__ = "fields"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    step_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("steps.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    field_type: Mapped[str] = mapped_column(String(20), nullable=False, default=FieldType.TEXT.value)
    placeholder: Mapped[Optional[str]] = mapped_column(String(300))
    help_text: Mapped[Optional[str]] = mapped_column(Text)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    field_order: Mapped[int] = mapped_column(Integer, nullable=False)
    # {"min_length": int, "max_length": int, "pattern": str}
    validation: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    step = relationship("Step", back_populates="fields")
    choices: Mapped[List["Choice"]] = relationship(
        "Choice",
        back_populates="field",
        order_by="Choice.choice_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def type(self) -> FieldType:
        return FieldType(self.field_type)

    def __repr__(self):
        return f"<Field {self.name} ({self.field_type})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "step_id": str(self.step_id),
            "name": self.name,
            "label": self.label,
            "field_type": self.field_type,
            "placeholder": self.placeholder,
            "help_text": self.help_text,
            "required": self.required,
            "field_order": self.field_order,
            "validation": self.validation or {},
            "choices": [c.to_dict() for c in self.choices],
        }


class Choice(Base):
    """One selectable option of a select/radio/checkbox Field."""

    __tablename__ = "choices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("fields.id", ondelete="CASCADE"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    value: Mapped[str] = mapped_column(String(200), nullable=False)
    choice_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    field = relationship("Field", back_populates="choices")

    def __repr__(self):
        return f"<Choice {self.value}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "field_id": str(self.field_id),
            "label": self.label,
            "value": self.value,
            "choice_order": self.choice_order,
            "is_default": self.is_default,
        }

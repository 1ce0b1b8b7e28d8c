# qrinspect/models/template.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from qrinspect.db.base import Base
from qrinspect.core.clock import utcnow


class Template(Base):
    """Reusable checklist definition with a recurrence interval."""

    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Optional: narrows eligible inspectors to one department
    department_id = Column(
        Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Interval between completions, in days
    frequency_days = Column(Integer, nullable=False, default=30)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization")
    department = relationship("Department")
    checklist_items = relationship(
        "ChecklistItem",
        back_populates="template",
        order_by="ChecklistItem.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("frequency_days > 0", name="ck_templates_frequency_positive"),
    )

    def __repr__(self) -> str:
        return f"<Template id={self.id} name={self.name!r} every={self.frequency_days}d>"


class ChecklistItem(Base):
    __tablename__ = "checklist_items"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(
        Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    order = Column(Integer, nullable=False, default=0)

    # Token encoded in the printed QR label
    qr_code_id = Column(String(64), nullable=False, unique=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    template = relationship("Template", back_populates="checklist_items")

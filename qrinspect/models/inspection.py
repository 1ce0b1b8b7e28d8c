# qrinspect/models/inspection.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from qrinspect.db.base import Base
from qrinspect.core.clock import utcnow

STATUS_PENDING = "PENDING"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"

INSPECTION_STATUS = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED)
# "Open" = anything not yet completed
OPEN_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)


class InspectionInstance(Base):
    __tablename__ = "inspection_instances"

    id = Column(Integer, primary_key=True, index=True)

    template_id = Column(
        Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inspector_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    department_id = Column(
        Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    due_date = Column(DateTime, nullable=False, index=True)
    # PENDING | IN_PROGRESS | COMPLETED
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    template = relationship("Template")
    inspector = relationship("User", foreign_keys=[inspector_id])
    department = relationship("Department")
    report = relationship(
        "InspectionReport",
        back_populates="inspection",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            f"status IN {INSPECTION_STATUS}",
            name="ck_inspection_instances_status_allowed",
        ),
        Index("ix_inspections_template_status", "template_id", "status"),
        Index("ix_inspections_inspector_status", "inspector_id", "status"),
        Index("ix_inspections_template_completed", "template_id", "completed_at"),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def __repr__(self) -> str:
        return (
            f"<InspectionInstance id={self.id} template={self.template_id} "
            f"status={self.status} due={self.due_date}>"
        )


class InspectionReport(Base):
    __tablename__ = "inspection_reports"

    id = Column(Integer, primary_key=True, index=True)
    inspection_id = Column(
        Integer,
        ForeignKey("inspection_instances.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    locked = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    inspection = relationship("InspectionInstance", back_populates="report")
    items = relationship(
        "ReportItemResult",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ReportItemResult(Base):
    __tablename__ = "report_item_results"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(
        Integer, ForeignKey("inspection_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checklist_item_id = Column(
        Integer, ForeignKey("checklist_items.id", ondelete="CASCADE"), nullable=False, index=True
    )

    approved = Column(Boolean, nullable=False, default=False)
    comments = Column(Text, nullable=True)
    # Blob storage is external; we only keep the public URL
    image_url = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    report = relationship("InspectionReport", back_populates="items")
    checklist_item = relationship("ChecklistItem")

    __table_args__ = (
        UniqueConstraint("checklist_item_id", "report_id", name="uq_report_item_result"),
    )

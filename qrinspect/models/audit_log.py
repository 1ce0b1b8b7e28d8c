# qrinspect/models/audit_log.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Index

from qrinspect.db.base import Base
from qrinspect.core.clock import utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # no FKs: audit rows must survive deletion of what they describe
    organization_id = Column(Integer, nullable=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(64), nullable=True)
    entity_id = Column(Integer, nullable=True)
    meta = Column(Text, nullable=True)  # JSON
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

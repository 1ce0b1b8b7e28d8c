# qrinspect/models/scheduler_lock.py
from sqlalchemy import Column, String, DateTime

from qrinspect.db.base import Base


class SchedulerLock(Base):
    """Advisory lease row; one row per named background job."""

    __tablename__ = "scheduler_locks"

    name = Column(String(100), primary_key=True)
    holder = Column(String(64), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

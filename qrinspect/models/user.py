# qrinspect/models/user.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Boolean,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from qrinspect.db.base import Base
from qrinspect.core.clock import utcnow

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_ADMIN = "ADMIN"
ROLE_MINI_ADMIN = "MINI_ADMIN"
ROLE_INSPECTOR = "INSPECTOR"

# NOTE: plain string "enum" for SQLite portability
USER_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_MINI_ADMIN, ROLE_INSPECTOR)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)

    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String(255), nullable=True)

    # Tenancy / RBAC
    role = Column(String(20), nullable=False, default=ROLE_INSPECTOR, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    area_id = Column(Integer, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True, index=True)
    department_id = Column(
        Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True
    )

    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", backref="users", passive_deletes=True)
    area = relationship("Area")
    department = relationship("Department")

    __table_args__ = (
        CheckConstraint(f"role IN {USER_ROLES}", name="ck_users_role_allowed"),
        # Eligibility lookup of the scheduler: organization + role (+ department)
        Index("ix_users_org_role_dept", "organization_id", "role", "department_id"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

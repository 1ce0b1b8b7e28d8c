# qrinspect/core/rbac.py
from __future__ import annotations

from typing import Iterable, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Query, Session

from qrinspect.models.user import (
    User,
    ROLE_SUPER_ADMIN,
    ROLE_ADMIN,
    ROLE_MINI_ADMIN,
    ROLE_INSPECTOR,
)
from qrinspect.models.organization import Department
from qrinspect.models.inspection import InspectionInstance

ADMIN_ROLES = {ROLE_SUPER_ADMIN, ROLE_ADMIN}
MANAGER_ROLES = {ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_MINI_ADMIN}
FIELD_ROLES = {ROLE_ADMIN, ROLE_MINI_ADMIN, ROLE_INSPECTOR}


# -----------------------------
# Basic checks
# -----------------------------


def _role(user: Optional[User]) -> str:
    return (user.role or "").strip().upper() if user else ""


def is_super_admin(user: User) -> bool:
    return _role(user) == ROLE_SUPER_ADMIN


def ensure_roles(user: User, roles: Iterable[str]) -> None:
    """403 unless the user's role is one of ``roles``."""
    if _role(user) not in set(roles):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges")


def ensure_superadmin(user: User) -> None:
    if not is_super_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super Admin only")


def resolve_organization_id(user: User, organization_id: Optional[int]) -> int:
    """
    Organization the request operates on:
      - SUPER_ADMIN picks one explicitly (query param),
      - everybody else is pinned to their own organization.
    """
    if is_super_admin(user):
        if organization_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="organization_id is required for Super Admin",
            )
        return organization_id
    if user.organization_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Organization not found")
    if organization_id is not None and organization_id != user.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (organization)")
    return user.organization_id


def ensure_same_organization(user: User, organization_id: Optional[int]) -> None:
    """403 if the target row belongs to another organization (unless Super Admin)."""
    if is_super_admin(user):
        return
    if user.organization_id is None or user.organization_id != organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (organization)")


def ensure_template_scope(db: Session, user: User, template) -> None:
    """403 unless the template is in the user's organization and, for a Mini Admin, in its area."""
    ensure_same_organization(user, template.organization_id)
    if _role(user) != ROLE_MINI_ADMIN:
        return
    department = db.get(Department, template.department_id) if template.department_id else None
    if department is None or user.area_id is None or department.area_id != user.area_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (area)")


# -----------------------------
# Inspection scoping
# -----------------------------


def can_access_department(user: User, department: Department) -> bool:
    """
    Visibility of everything hanging off a department:
      - SUPER_ADMIN: all
      - ADMIN: own organization
      - MINI_ADMIN: own area
      - INSPECTOR: own department
    """
    role = _role(user)
    if role == ROLE_SUPER_ADMIN:
        return True
    if role == ROLE_ADMIN:
        return user.organization_id is not None and department.organization_id == user.organization_id
    if role == ROLE_MINI_ADMIN:
        return user.area_id is not None and department.area_id == user.area_id
    if role == ROLE_INSPECTOR:
        return user.department_id is not None and department.id == user.department_id
    return False


def can_access_inspection(user: User, inspection: InspectionInstance) -> bool:
    # The assigned inspector always sees their own inspection
    if inspection.inspector_id == user.id:
        return True
    department = inspection.department
    return department is not None and can_access_department(user, department)


def scope_inspections(query: Query, user: User, organization_id: Optional[int] = None) -> Query:
    """
    Narrow an InspectionInstance query to what ``user`` may see.
    ``organization_id`` lets a Super Admin look at a single tenant.
    """
    role = _role(user)
    if role == ROLE_INSPECTOR:
        return query.filter(InspectionInstance.department_id == user.department_id)

    query = query.join(Department, InspectionInstance.department_id == Department.id)
    if role == ROLE_MINI_ADMIN:
        return query.filter(Department.area_id == user.area_id)
    if role == ROLE_ADMIN:
        return query.filter(Department.organization_id == user.organization_id)
    if role == ROLE_SUPER_ADMIN:
        if organization_id is not None:
            query = query.filter(Department.organization_id == organization_id)
        return query
    # Unknown role → nothing
    return query.filter(InspectionInstance.id.is_(None))


def scoped_inspections(db: Session, user: User, organization_id: Optional[int] = None) -> Query:
    return scope_inspections(db.query(InspectionInstance), user, organization_id)

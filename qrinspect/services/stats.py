# qrinspect/services/stats.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from qrinspect.core.rbac import scoped_inspections
from qrinspect.models.inspection import InspectionInstance
from qrinspect.models.organization import Area, Department, Organization
from qrinspect.models.template import Template
from qrinspect.models.user import (
    User,
    ROLE_SUPER_ADMIN,
    ROLE_ADMIN,
    ROLE_MINI_ADMIN,
)
from qrinspect.services.inspection_status import DEFAULT_BUFFER_DAYS, summarize_statuses


def _scope_name(user: User, organization_id: Optional[int]) -> str:
    if user.role == ROLE_SUPER_ADMIN:
        return "organization" if organization_id is not None else "global"
    if user.role == ROLE_ADMIN:
        return "organization"
    if user.role == ROLE_MINI_ADMIN:
        return "area"
    return "department"


def dashboard_stats(
    db: Session,
    user: User,
    *,
    organization_id: Optional[int] = None,
    buffer_days: int = DEFAULT_BUFFER_DAYS,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Inspection counters for whatever the user can see, plus entity counts
    for the organization-level scopes. Classification always goes through
    ``summarize_statuses`` so every scope uses the same buffer.
    """
    rows = (
        scoped_inspections(db, user, organization_id)
        .with_entities(
            InspectionInstance.id,
            InspectionInstance.status,
            InspectionInstance.due_date,
            InspectionInstance.completed_at,
        )
        .all()
    )
    out: Dict[str, Any] = {"scope": _scope_name(user, organization_id)}
    out.update(summarize_statuses(rows, buffer_days, now=now))

    if user.role == ROLE_SUPER_ADMIN and organization_id is None:
        out["total_organizations"] = db.query(Organization).count()
        out["total_users"] = db.query(User).count()
        out["total_templates"] = db.query(Template).count()
        return out

    if user.role in (ROLE_SUPER_ADMIN, ROLE_ADMIN):
        org_id = organization_id if user.role == ROLE_SUPER_ADMIN else user.organization_id
        out["total_areas"] = db.query(Area).filter(Area.organization_id == org_id).count()
        out["total_departments"] = (
            db.query(Department).filter(Department.organization_id == org_id).count()
        )
        out["total_users"] = db.query(User).filter(User.organization_id == org_id).count()
        out["total_templates"] = (
            db.query(Template).filter(Template.organization_id == org_id).count()
        )
    elif user.role == ROLE_MINI_ADMIN:
        dept_ids = [d for (d,) in db.query(Department.id).filter(Department.area_id == user.area_id).all()]
        out["total_departments"] = len(dept_ids)
        out["total_users"] = db.query(User).filter(User.area_id == user.area_id).count()
        out["total_templates"] = (
            db.query(Template).filter(Template.department_id.in_(dept_ids)).count() if dept_ids else 0
        )
    return out

# qrinspect/api/v1/stats.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from qrinspect.core.auth import get_db, get_current_user
from qrinspect.core.rbac import ensure_same_organization
from qrinspect.models.user import User
from qrinspect.schemas.inspection import DashboardStats
from qrinspect.services.stats import dashboard_stats

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Dashboard counters for the caller's scope (Super Admin may narrow to one organization)."""
    if organization_id is not None:
        ensure_same_organization(current_user, organization_id)
    return dashboard_stats(db, current_user, organization_id=organization_id)

# qrinspect/api/v1/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from qrinspect.core.auth import get_db, get_current_user, get_user_by_email
from qrinspect.core.rbac import (
    MANAGER_ROLES,
    ensure_roles,
    ensure_same_organization,
    is_super_admin,
    resolve_organization_id,
)
from qrinspect.crud import organization as crud_org
from qrinspect.crud import user as crud
from qrinspect.models.inspection import InspectionInstance
from qrinspect.models.user import (
    User,
    ROLE_SUPER_ADMIN,
    ROLE_ADMIN,
    ROLE_MINI_ADMIN,
    ROLE_INSPECTOR,
)
from qrinspect.schemas.user import UserCreate, UserOut, UserUpdate
from qrinspect.services.audit import audit_commit

router = APIRouter()

# Roles each manager role may hand out
GRANTABLE_ROLES = {
    ROLE_SUPER_ADMIN: {ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_MINI_ADMIN, ROLE_INSPECTOR},
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_MINI_ADMIN, ROLE_INSPECTOR},
    ROLE_MINI_ADMIN: {ROLE_INSPECTOR},
}


def _ensure_can_grant(current_user: User, role: str) -> None:
    if role not in GRANTABLE_ROLES.get(current_user.role, set()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Cannot assign role {role}")


def _validate_placement(db: Session, organization_id: Optional[int], area_id: Optional[int], department_id: Optional[int]) -> None:
    """Area and department must belong to the user's organization."""
    if area_id is not None:
        area = crud_org.get_area(db, area_id)
        if not area or area.organization_id != organization_id:
            raise HTTPException(status_code=400, detail="Area does not belong to the organization")
    if department_id is not None:
        dept = crud_org.get_department(db, department_id)
        if not dept or dept.organization_id != organization_id:
            raise HTTPException(status_code=400, detail="Department does not belong to the organization")


def _ensure_department_in_area(db: Session, current_user: User, department_id: Optional[int]) -> None:
    if current_user.role != ROLE_MINI_ADMIN or department_id is None:
        return
    dept = crud_org.get_department(db, department_id)
    if not dept or dept.area_id != current_user.area_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (area)")


def _ensure_manages(current_user: User, target: User) -> None:
    ensure_same_organization(current_user, target.organization_id)
    if current_user.role == ROLE_MINI_ADMIN and (
        target.area_id != current_user.area_id or target.role != ROLE_INSPECTOR
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (area)")


@router.get("/users", response_model=List[UserOut])
def list_users(
    organization_id: Optional[int] = Query(None),
    role: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    if is_super_admin(current_user) and organization_id is None:
        return crud.list_users(db, role=role)
    org_id = resolve_organization_id(current_user, organization_id)
    area_id = current_user.area_id if current_user.role == ROLE_MINI_ADMIN else None
    return crud.list_users(db, organization_id=org_id, area_id=area_id, role=role)


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    _ensure_can_grant(current_user, payload.role)

    if payload.role != ROLE_SUPER_ADMIN:
        payload.organization_id = resolve_organization_id(current_user, payload.organization_id)
    if current_user.role == ROLE_MINI_ADMIN:
        payload.area_id = current_user.area_id
    _validate_placement(db, payload.organization_id, payload.area_id, payload.department_id)
    _ensure_department_in_area(db, current_user, payload.department_id)

    if get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    obj = crud.create_user(db, payload)
    audit_commit(
        db,
        request,
        current_user,
        action="USER_CREATED",
        entity_type="user",
        entity_id=obj.id,
        organization_id=obj.organization_id,
        meta={"email": obj.email, "role": obj.role},
    )
    return obj


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    obj = crud.get_user(db, user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    _ensure_manages(current_user, obj)
    return obj


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    obj = crud.get_user(db, user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    _ensure_manages(current_user, obj)
    if payload.role is not None:
        _ensure_can_grant(current_user, payload.role)
    if payload.email and payload.email.lower() != obj.email.lower() and get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    if current_user.role == ROLE_MINI_ADMIN and payload.area_id not in (None, current_user.area_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (area)")
    _validate_placement(db, obj.organization_id, payload.area_id, payload.department_id)
    _ensure_department_in_area(db, current_user, payload.department_id)

    changed = sorted(payload.model_dump(exclude_unset=True, exclude={"password"}).keys())
    obj = crud.update_user(db, obj, payload)
    audit_commit(
        db,
        request,
        current_user,
        action="USER_UPDATED",
        entity_type="user",
        entity_id=obj.id,
        organization_id=obj.organization_id,
        meta={"fields": changed},
    )
    return obj


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    obj = crud.get_user(db, user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    if obj.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete yourself")
    _ensure_manages(current_user, obj)
    if db.query(InspectionInstance.id).filter(InspectionInstance.inspector_id == obj.id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User has inspections; deactivate the account instead",
        )
    org_id = obj.organization_id
    crud.delete_user(db, obj)
    audit_commit(
        db,
        request,
        current_user,
        action="USER_DELETED",
        entity_type="user",
        entity_id=user_id,
        organization_id=org_id,
    )

# qrinspect/api/v1/organizations.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from qrinspect.core.auth import get_db, get_current_user
from qrinspect.core.rbac import (
    ADMIN_ROLES,
    MANAGER_ROLES,
    ensure_roles,
    ensure_same_organization,
    ensure_superadmin,
    resolve_organization_id,
)
from qrinspect.crud import organization as crud
from qrinspect.models.user import User, ROLE_MINI_ADMIN
from qrinspect.schemas.organization import (
    AreaIn,
    AreaOut,
    DepartmentIn,
    DepartmentOut,
    OrganizationIn,
    OrganizationOut,
)
from qrinspect.services.audit import audit_commit

router = APIRouter()


# -----------------------------
# Organizations (Super Admin)
# -----------------------------
@router.get("/organizations", response_model=List[OrganizationOut])
def list_organizations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_superadmin(current_user)
    return crud.list_organizations(db)


@router.post("/organizations", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_superadmin(current_user)
    obj = crud.create_organization(db, payload.name)
    audit_commit(
        db,
        request,
        current_user,
        action="ORGANIZATION_CREATED",
        entity_type="organization",
        entity_id=obj.id,
        organization_id=obj.id,
        meta={"name": obj.name},
    )
    return obj


@router.put("/organizations/{organization_id}", response_model=OrganizationOut)
def update_organization(
    organization_id: int,
    payload: OrganizationIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_superadmin(current_user)
    obj = crud.get_organization(db, organization_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Organization not found")
    obj = crud.rename(db, obj, payload.name)
    audit_commit(
        db,
        request,
        current_user,
        action="ORGANIZATION_UPDATED",
        entity_type="organization",
        entity_id=obj.id,
        organization_id=obj.id,
        meta={"name": obj.name},
    )
    return obj


@router.delete("/organizations/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization(
    organization_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_superadmin(current_user)
    obj = crud.get_organization(db, organization_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Organization not found")
    crud.delete(db, obj)
    audit_commit(
        db,
        request,
        current_user,
        action="ORGANIZATION_DELETED",
        entity_type="organization",
        entity_id=organization_id,
        organization_id=None,
    )


# -----------------------------
# Areas
# -----------------------------
@router.get("/areas", response_model=List[AreaOut])
def list_areas(
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    org_id = resolve_organization_id(current_user, organization_id)
    rows = crud.list_areas(db, org_id)
    if current_user.role == ROLE_MINI_ADMIN:
        rows = [a for a in rows if a.id == current_user.area_id]
    return rows


@router.post("/areas", response_model=AreaOut, status_code=status.HTTP_201_CREATED)
def create_area(
    payload: AreaIn,
    request: Request,
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    org_id = resolve_organization_id(current_user, organization_id)
    if not crud.get_organization(db, org_id):
        raise HTTPException(status_code=404, detail="Organization not found")
    obj = crud.create_area(db, org_id, payload.name)
    audit_commit(
        db,
        request,
        current_user,
        action="AREA_CREATED",
        entity_type="area",
        entity_id=obj.id,
        organization_id=org_id,
        meta={"name": obj.name},
    )
    return obj


@router.put("/areas/{area_id}", response_model=AreaOut)
def update_area(
    area_id: int,
    payload: AreaIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = crud.get_area(db, area_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Area not found")
    ensure_same_organization(current_user, obj.organization_id)
    obj = crud.rename(db, obj, payload.name)
    audit_commit(
        db,
        request,
        current_user,
        action="AREA_UPDATED",
        entity_type="area",
        entity_id=obj.id,
        organization_id=obj.organization_id,
        meta={"name": obj.name},
    )
    return obj


@router.delete("/areas/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_area(
    area_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = crud.get_area(db, area_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Area not found")
    ensure_same_organization(current_user, obj.organization_id)
    org_id = obj.organization_id
    crud.delete(db, obj)
    audit_commit(
        db,
        request,
        current_user,
        action="AREA_DELETED",
        entity_type="area",
        entity_id=area_id,
        organization_id=org_id,
    )


# -----------------------------
# Departments
# -----------------------------
@router.get("/departments", response_model=List[DepartmentOut])
def list_departments(
    organization_id: Optional[int] = Query(None),
    area_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    org_id = resolve_organization_id(current_user, organization_id)
    if current_user.role == ROLE_MINI_ADMIN:
        # mini admins only ever see their own area
        area_id = current_user.area_id
    return crud.list_departments(db, org_id, area_id)


@router.post("/departments", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentIn,
    request: Request,
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    org_id = resolve_organization_id(current_user, organization_id)
    if payload.area_id is not None:
        area = crud.get_area(db, payload.area_id)
        if not area or area.organization_id != org_id:
            raise HTTPException(status_code=400, detail="Area does not belong to the organization")
    obj = crud.create_department(db, org_id, payload.name, payload.area_id)
    audit_commit(
        db,
        request,
        current_user,
        action="DEPARTMENT_CREATED",
        entity_type="department",
        entity_id=obj.id,
        organization_id=org_id,
        meta={"name": obj.name},
    )
    return obj


@router.put("/departments/{department_id}", response_model=DepartmentOut)
def update_department(
    department_id: int,
    payload: DepartmentIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = crud.get_department(db, department_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Department not found")
    ensure_same_organization(current_user, obj.organization_id)
    if payload.area_id is not None:
        area = crud.get_area(db, payload.area_id)
        if not area or area.organization_id != obj.organization_id:
            raise HTTPException(status_code=400, detail="Area does not belong to the organization")
    obj.area_id = payload.area_id
    obj = crud.rename(db, obj, payload.name)
    audit_commit(
        db,
        request,
        current_user,
        action="DEPARTMENT_UPDATED",
        entity_type="department",
        entity_id=obj.id,
        organization_id=obj.organization_id,
    )
    return obj


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(
    department_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = crud.get_department(db, department_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Department not found")
    ensure_same_organization(current_user, obj.organization_id)
    org_id = obj.organization_id
    crud.delete(db, obj)
    audit_commit(
        db,
        request,
        current_user,
        action="DEPARTMENT_DELETED",
        entity_type="department",
        entity_id=department_id,
        organization_id=org_id,
    )

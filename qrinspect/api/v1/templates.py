# qrinspect/api/v1/templates.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from qrinspect.core.auth import get_db, get_current_user
from qrinspect.core.rbac import (
    ADMIN_ROLES,
    MANAGER_ROLES,
    ensure_roles,
    ensure_template_scope,
    resolve_organization_id,
)
from qrinspect.crud import organization as crud_org
from qrinspect.crud import template as crud
from qrinspect.models.organization import Department
from qrinspect.models.template import Template
from qrinspect.models.user import User, ROLE_MINI_ADMIN
from qrinspect.schemas.template import (
    ChecklistItemCreate,
    ChecklistItemOut,
    ChecklistItemQrOut,
    ChecklistItemUpdate,
    ChecklistReorder,
    TemplateCreate,
    TemplateOut,
    TemplateUpdate,
)
from qrinspect.services.audit import audit_commit
from qrinspect.services.qr_codes import qr_data_url, qr_filename, render_qr_png

router = APIRouter()


def _area_department_ids(db: Session, area_id: Optional[int]) -> List[int]:
    return [d for (d,) in db.query(Department.id).filter(Department.area_id == area_id).all()]


def _load_template(db: Session, user: User, template_id: int) -> Template:
    obj = crud.get_template(db, template_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Template not found")
    ensure_template_scope(db, user, obj)
    return obj


def _check_department(db: Session, organization_id: int, department_id: Optional[int]) -> None:
    if department_id is None:
        return
    dept = crud_org.get_department(db, department_id)
    if not dept or dept.organization_id != organization_id:
        raise HTTPException(status_code=400, detail="Department does not belong to the organization")


# -----------------------------
# Templates
# -----------------------------
@router.get("/templates", response_model=List[TemplateOut])
def list_templates(
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    org_id = resolve_organization_id(current_user, organization_id)
    dept_ids = None
    if current_user.role == ROLE_MINI_ADMIN:
        dept_ids = _area_department_ids(db, current_user.area_id)
    return crud.list_templates(db, org_id, dept_ids)


@router.post("/templates", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    org_id = resolve_organization_id(current_user, payload.organization_id)
    _check_department(db, org_id, payload.department_id)
    obj = crud.create_template(db, payload, org_id)
    audit_commit(
        db,
        request,
        current_user,
        action="TEMPLATE_CREATED",
        entity_type="template",
        entity_id=obj.id,
        organization_id=org_id,
        meta={"name": obj.name, "frequency_days": obj.frequency_days},
    )
    return obj


@router.get("/templates/{template_id}", response_model=TemplateOut)
def get_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    return _load_template(db, current_user, template_id)


@router.put("/templates/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = _load_template(db, current_user, template_id)
    _check_department(db, obj.organization_id, payload.department_id)
    changed = sorted(payload.model_dump(exclude_unset=True).keys())
    obj = crud.update_template(db, obj, payload)
    audit_commit(
        db,
        request,
        current_user,
        action="TEMPLATE_UPDATED",
        entity_type="template",
        entity_id=obj.id,
        organization_id=obj.organization_id,
        meta={"fields": changed},
    )
    return obj


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    obj = _load_template(db, current_user, template_id)
    org_id = obj.organization_id
    crud.delete_template(db, obj)
    audit_commit(
        db,
        request,
        current_user,
        action="TEMPLATE_DELETED",
        entity_type="template",
        entity_id=template_id,
        organization_id=org_id,
    )


# -----------------------------
# Checklist items
# -----------------------------
@router.get("/templates/{template_id}/items", response_model=List[ChecklistItemOut])
def list_items(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    obj = _load_template(db, current_user, template_id)
    return crud.list_items(db, obj.id)


@router.get("/templates/{template_id}/items/qr-codes", response_model=List[ChecklistItemQrOut])
def list_item_qr_codes(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Items of the template in checklist order, each with a PNG data URL of its QR code."""
    ensure_roles(current_user, MANAGER_ROLES)
    obj = _load_template(db, current_user, template_id)
    return [
        ChecklistItemQrOut(
            **ChecklistItemOut.model_validate(item).model_dump(),
            qr_code_url=qr_data_url(item.qr_code_id),
        )
        for item in crud.list_items(db, obj.id)
    ]


@router.get("/templates/{template_id}/items/{item_id}/qr.png")
def download_item_qr_code(
    template_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, MANAGER_ROLES)
    template = _load_template(db, current_user, template_id)
    item = _load_item(db, template, item_id)
    return Response(
        content=render_qr_png(item.qr_code_id),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{qr_filename(item.name)}"'},
    )


@router.post(
    "/templates/{template_id}/items",
    response_model=ChecklistItemOut,
    status_code=status.HTTP_201_CREATED,
)
def create_item(
    template_id: int,
    payload: ChecklistItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    template = _load_template(db, current_user, template_id)
    item = crud.create_item(db, template, payload)
    audit_commit(
        db,
        request,
        current_user,
        action="CHECKLIST_ITEM_CREATED",
        entity_type="checklist_item",
        entity_id=item.id,
        organization_id=template.organization_id,
        meta={"template_id": template.id, "name": item.name},
    )
    return item


def _load_item(db: Session, template: Template, item_id: int):
    item = crud.get_item(db, item_id)
    if not item or item.template_id != template.id:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return item


@router.put("/templates/{template_id}/items/{item_id}", response_model=ChecklistItemOut)
def update_item(
    template_id: int,
    item_id: int,
    payload: ChecklistItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    template = _load_template(db, current_user, template_id)
    return crud.update_item(db, _load_item(db, template, item_id), payload)


@router.post("/templates/{template_id}/items/{item_id}/regenerate-qr", response_model=ChecklistItemOut)
def regenerate_qr(
    template_id: int,
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Issue a fresh QR token; the old printed code stops resolving."""
    ensure_roles(current_user, ADMIN_ROLES)
    template = _load_template(db, current_user, template_id)
    item = crud.regenerate_qr_code(db, _load_item(db, template, item_id))
    audit_commit(
        db,
        request,
        current_user,
        action="QR_CODE_REGENERATED",
        entity_type="checklist_item",
        entity_id=item.id,
        organization_id=template.organization_id,
    )
    return item


@router.delete("/templates/{template_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    template_id: int,
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    template = _load_template(db, current_user, template_id)
    crud.delete_item(db, _load_item(db, template, item_id))
    audit_commit(
        db,
        request,
        current_user,
        action="CHECKLIST_ITEM_DELETED",
        entity_type="checklist_item",
        entity_id=item_id,
        organization_id=template.organization_id,
    )


@router.put("/templates/{template_id}/items-order", response_model=List[ChecklistItemOut])
def reorder_items(
    template_id: int,
    payload: ChecklistReorder,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, ADMIN_ROLES)
    template = _load_template(db, current_user, template_id)
    try:
        return crud.reorder_items(db, template, payload.item_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

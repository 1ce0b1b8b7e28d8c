# qrinspect/crud/template.py
import secrets
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from qrinspect.models.template import Template, ChecklistItem
from qrinspect.schemas.template import (
    TemplateCreate,
    TemplateUpdate,
    ChecklistItemCreate,
    ChecklistItemUpdate,
)


def new_qr_code_id() -> str:
    return secrets.token_hex(12)


# --- Templates ---------------------------------------------------------------

def get_template(db: Session, template_id: int) -> Optional[Template]:
    return db.get(Template, template_id)


def list_templates(
    db: Session,
    organization_id: int,
    department_ids: Optional[List[int]] = None,
) -> List[Template]:
    q = db.query(Template).filter(Template.organization_id == organization_id)
    if department_ids is not None:
        q = q.filter(Template.department_id.in_(department_ids))
    return q.order_by(Template.name.asc(), Template.id.asc()).all()


def create_template(db: Session, payload: TemplateCreate, organization_id: int) -> Template:
    obj = Template(
        organization_id=organization_id,
        name=payload.name,
        description=payload.description,
        department_id=payload.department_id,
        frequency_days=payload.frequency_days,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_template(db: Session, obj: Template, payload: TemplateUpdate) -> Template:
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(obj, k, v)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_template(db: Session, obj: Template) -> None:
    db.delete(obj)
    db.commit()


# --- Checklist items ---------------------------------------------------------

def get_item(db: Session, item_id: int) -> Optional[ChecklistItem]:
    return db.get(ChecklistItem, item_id)


def list_items(db: Session, template_id: int) -> List[ChecklistItem]:
    return (
        db.query(ChecklistItem)
        .filter(ChecklistItem.template_id == template_id)
        .order_by(ChecklistItem.order.asc(), ChecklistItem.id.asc())
        .all()
    )


def create_item(db: Session, template: Template, payload: ChecklistItemCreate) -> ChecklistItem:
    # Append at the end
    max_order = (
        db.query(func.max(ChecklistItem.order))
        .filter(ChecklistItem.template_id == template.id)
        .scalar()
    )
    obj = ChecklistItem(
        template_id=template.id,
        name=payload.name,
        description=payload.description,
        location=payload.location,
        order=0 if max_order is None else max_order + 1,
        qr_code_id=new_qr_code_id(),
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_item(db: Session, obj: ChecklistItem, payload: ChecklistItemUpdate) -> ChecklistItem:
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(obj, k, v)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_item(db: Session, obj: ChecklistItem) -> None:
    template_id = obj.template_id
    db.delete(obj)
    db.flush()
    # close the gap
    for idx, item in enumerate(list_items(db, template_id)):
        item.order = idx
    db.commit()


def reorder_items(db: Session, template: Template, item_ids: List[int]) -> List[ChecklistItem]:
    """
    Apply a full new ordering. ``item_ids`` must be exactly the template's items.
    Raises ValueError otherwise.
    """
    items = {i.id: i for i in list_items(db, template.id)}
    if len(item_ids) != len(set(item_ids)) or set(item_ids) != set(items):
        raise ValueError("item_ids must list every checklist item of the template exactly once")
    for idx, item_id in enumerate(item_ids):
        items[item_id].order = idx
    db.commit()
    return list_items(db, template.id)


def regenerate_qr_code(db: Session, obj: ChecklistItem) -> ChecklistItem:
    obj.qr_code_id = new_qr_code_id()
    db.commit()
    db.refresh(obj)
    return obj

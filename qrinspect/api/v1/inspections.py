# qrinspect/api/v1/inspections.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from qrinspect.core.auth import get_db, get_current_user
from qrinspect.core.clock import utcnow
from qrinspect.core.rbac import (
    FIELD_ROLES,
    MANAGER_ROLES,
    ensure_roles,
    ensure_template_scope,
    scoped_inspections,
)
from qrinspect.models.inspection import InspectionInstance, OPEN_STATUSES
from qrinspect.models.template import Template
from qrinspect.models.user import User
from qrinspect.schemas.inspection import (
    ChecklistProgressItem,
    InspectionCreate,
    InspectionDetail,
    InspectionListItem,
    InspectionOut,
    ItemResultIn,
    ItemResultOut,
    QrScanOut,
)
from qrinspect.services.audit import audit_commit
from qrinspect.services.inspection_scheduler import create_inspection_for_template
from qrinspect.services.inspection_status import badge_text, classify_inspection
from qrinspect.services.inspection_workflow import (
    get_inspection_for_user,
    resolve_qr_scan,
    save_item_result,
    submit_inspection,
)
from qrinspect.services.reports.inspection_pdf import generate_inspection_report

router = APIRouter()


def _org_of(inspection: InspectionInstance) -> Optional[int]:
    department = inspection.department
    return department.organization_id if department is not None else None


def _to_list_item(inspection: InspectionInstance, now) -> InspectionListItem:
    base = InspectionOut.model_validate(inspection).model_dump()
    inspector = inspection.inspector
    info = classify_inspection(inspection.due_date, inspection.completed_at, now=now)
    return InspectionListItem(
        **base,
        template_name=getattr(inspection.template, "name", None),
        department_name=getattr(inspection.department, "name", None),
        inspector_name=getattr(inspector, "name", None),
        inspector_email=getattr(inspector, "email", None),
        display=info,
        badge=badge_text(info),
    )


def _list(
    db: Session,
    user: User,
    *,
    organization_id: Optional[int],
    status_f: Optional[str],
    template_id: Optional[int],
    department_id: Optional[int],
    open_only: bool,
    skip: int,
    limit: int,
) -> List[InspectionListItem]:
    q = scoped_inspections(db, user, organization_id)
    if status_f:
        q = q.filter(InspectionInstance.status == status_f.upper())
    elif open_only:
        q = q.filter(InspectionInstance.status.in_(OPEN_STATUSES))
    if template_id is not None:
        q = q.filter(InspectionInstance.template_id == template_id)
    if department_id is not None:
        q = q.filter(InspectionInstance.department_id == department_id)
    rows = (
        q.order_by(InspectionInstance.due_date.asc(), InspectionInstance.id.asc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    now = utcnow()
    return [_to_list_item(r, now) for r in rows]


# -----------------------------
# Admin side
# -----------------------------
@router.get("/inspections", response_model=List[InspectionListItem])
def list_inspections(
    organization_id: Optional[int] = Query(None),
    status_f: Optional[str] = Query(None, alias="status"),
    template_id: Optional[int] = Query(None),
    department_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All inspections visible to the caller, earliest due first, with display status."""
    ensure_roles(current_user, MANAGER_ROLES)
    return _list(
        db,
        current_user,
        organization_id=organization_id,
        status_f=status_f,
        template_id=template_id,
        department_id=department_id,
        open_only=False,
        skip=skip,
        limit=limit,
    )


@router.post("/inspections", response_model=InspectionOut, status_code=status.HTTP_201_CREATED)
def create_inspection(
    payload: InspectionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Manual creation outside the schedule.
    404 unknown template, 422 invalid inspector, 409 when the template already
    has an open inspection and ``force`` is not set.
    """
    ensure_roles(current_user, MANAGER_ROLES)
    template = db.get(Template, payload.template_id)
    if template is not None:
        ensure_template_scope(db, current_user, template)

    obj = create_inspection_for_template(
        db,
        payload.template_id,
        payload.inspector_id,
        payload.due_date,
        allow_duplicate_open=payload.force,
    )
    audit_commit(
        db,
        request,
        current_user,
        action="INSPECTION_CREATED",
        entity_type="inspection",
        entity_id=obj.id,
        organization_id=_org_of(obj),
        meta={
            "template_id": obj.template_id,
            "inspector_id": obj.inspector_id,
            "due_date": obj.due_date,
            "force": payload.force,
        },
    )
    return obj


# -----------------------------
# Inspector side
# -----------------------------
@router.get("/inspector/inspections", response_model=List[InspectionListItem])
def list_my_inspections(
    include_completed: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Open inspections of the caller's scope (department for inspectors)."""
    ensure_roles(current_user, FIELD_ROLES)
    return _list(
        db,
        current_user,
        organization_id=None,
        status_f=None,
        template_id=None,
        department_id=None,
        open_only=not include_completed,
        skip=skip,
        limit=limit,
    )


@router.get("/inspector/qr-scan/{qr_code_id}", response_model=QrScanOut)
def qr_scan(
    qr_code_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, FIELD_ROLES)
    return resolve_qr_scan(db, current_user, qr_code_id)


@router.get("/inspections/{inspection_id}", response_model=InspectionDetail)
def get_inspection(
    inspection_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    inspection = get_inspection_for_user(db, current_user, inspection_id)
    report = inspection.report
    results = {r.checklist_item_id: r for r in (report.items if report else [])}

    items = [
        ChecklistProgressItem(
            item_id=item.id,
            name=item.name,
            description=item.description,
            location=item.location,
            order=item.order,
            result=ItemResultOut.model_validate(results[item.id]) if item.id in results else None,
        )
        for item in inspection.template.checklist_items
    ]
    base = _to_list_item(inspection, utcnow()).model_dump()
    return InspectionDetail(
        **base,
        report_locked=bool(report and report.locked),
        submitted_at=report.submitted_at if report else None,
        completed_items=sum(1 for i in items if i.result is not None),
        total_items=len(items),
        items=items,
    )


@router.put("/inspections/{inspection_id}/items/{item_id}", response_model=ItemResultOut)
def save_item(
    inspection_id: int,
    item_id: int,
    payload: ItemResultIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, FIELD_ROLES)
    return save_item_result(
        db,
        current_user,
        inspection_id,
        item_id,
        approved=payload.approved,
        comments=payload.comments,
        image_url=payload.image_url,
    )


@router.post("/inspections/{inspection_id}/submit", response_model=InspectionOut)
def submit(
    inspection_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_roles(current_user, FIELD_ROLES)
    inspection = submit_inspection(db, current_user, inspection_id)
    audit_commit(
        db,
        request,
        current_user,
        action="INSPECTION_SUBMITTED",
        entity_type="inspection",
        entity_id=inspection.id,
        organization_id=_org_of(inspection),
        meta={"template_id": inspection.template_id, "completed_at": inspection.completed_at},
    )
    return inspection


@router.get("/inspections/{inspection_id}/pdf")
def download_pdf(
    inspection_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    inspection = get_inspection_for_user(db, current_user, inspection_id)
    out = generate_inspection_report(inspection)
    return Response(
        content=out["pdf_bytes"],
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{out["filename"]}"',
            "Cache-Control": "no-cache",
        },
    )

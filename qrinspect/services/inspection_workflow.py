# qrinspect/services/inspection_workflow.py
"""
Inspector-side lifecycle of an inspection: QR scan → item results → submit.

Status only moves forward: PENDING → IN_PROGRESS (first saved item) →
COMPLETED (submit). A completed inspection and its report are read-only.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from qrinspect.core.clock import as_naive_utc, utcnow
from qrinspect.core.exceptions import (
    AccessDenied,
    ChecklistItemNotFound,
    IncompleteInspection,
    InspectionLocked,
    InspectionNotFound,
    NoActiveInspection,
    QrCodeNotFound,
)
from qrinspect.core.rbac import can_access_inspection, scoped_inspections
from qrinspect.models.inspection import (
    InspectionInstance,
    InspectionReport,
    ReportItemResult,
    OPEN_STATUSES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
)
from qrinspect.models.template import ChecklistItem
from qrinspect.models.user import User, ROLE_INSPECTOR

log = logging.getLogger("qrinspect.workflow")


def get_inspection_for_user(db: Session, user: User, inspection_id: int) -> InspectionInstance:
    inspection = db.get(InspectionInstance, inspection_id)
    if inspection is None:
        raise InspectionNotFound(inspection_id)
    if not can_access_inspection(user, inspection):
        raise AccessDenied()
    return inspection


def _take_over(inspection: InspectionInstance, user: User) -> None:
    # Whoever actually inspects becomes the assignee; admins editing keep the original one
    if user.role == ROLE_INSPECTOR and inspection.inspector_id != user.id:
        inspection.inspector_id = user.id


def resolve_qr_scan(db: Session, user: User, qr_code_id: str) -> Dict[str, Any]:
    """Map a scanned QR token to the earliest-due open inspection the user can work on."""
    item = db.query(ChecklistItem).filter(ChecklistItem.qr_code_id == qr_code_id).first()
    if item is None:
        raise QrCodeNotFound(qr_code_id)

    inspection = (
        scoped_inspections(db, user)
        .filter(
            InspectionInstance.template_id == item.template_id,
            InspectionInstance.status.in_(OPEN_STATUSES),
        )
        .order_by(InspectionInstance.due_date.asc(), InspectionInstance.id.asc())
        .first()
    )
    if inspection is None:
        raise NoActiveInspection(item.template_id)

    return {
        "inspection_id": inspection.id,
        "item_id": item.id,
        "item_name": item.name,
        "template_name": item.template.name,
        "item_order": item.order,
    }


def save_item_result(
    db: Session,
    user: User,
    inspection_id: int,
    item_id: int,
    *,
    approved: bool,
    comments: Optional[str] = None,
    image_url: Optional[str] = None,
) -> ReportItemResult:
    """
    Upsert the result of one checklist item.
    Keeps the previous image when no new one is sent; moves PENDING → IN_PROGRESS.
    """
    inspection = get_inspection_for_user(db, user, inspection_id)
    if inspection.status == STATUS_COMPLETED:
        raise InspectionLocked("Cannot modify completed inspection")

    item = db.get(ChecklistItem, item_id)
    if item is None or item.template_id != inspection.template_id:
        raise ChecklistItemNotFound(item_id)

    report = inspection.report
    if report is None:
        report = InspectionReport(inspection_id=inspection.id)
        db.add(report)
        db.flush()

    result = (
        db.query(ReportItemResult)
        .filter(
            ReportItemResult.report_id == report.id,
            ReportItemResult.checklist_item_id == item.id,
        )
        .first()
    )
    if result is None:
        result = ReportItemResult(
            report_id=report.id,
            checklist_item_id=item.id,
            approved=approved,
            comments=comments,
            image_url=image_url,
        )
        db.add(result)
    else:
        result.approved = approved
        result.comments = comments
        result.image_url = image_url or result.image_url

    if inspection.status == STATUS_PENDING:
        inspection.status = STATUS_IN_PROGRESS
        log.info("inspection %s started by user %s", inspection.id, user.id)
    _take_over(inspection, user)

    db.commit()
    db.refresh(result)
    return result


def submit_inspection(
    db: Session,
    user: User,
    inspection_id: int,
    *,
    now: Optional[datetime] = None,
) -> InspectionInstance:
    """Complete the inspection once every checklist item has a result, and lock its report."""
    inspection = get_inspection_for_user(db, user, inspection_id)
    if inspection.status == STATUS_COMPLETED:
        raise InspectionLocked("Inspection already completed")

    report = inspection.report
    if report is None:
        raise IncompleteInspection("No inspection report found")

    required = {item.id for item in inspection.template.checklist_items}
    answered = {r.checklist_item_id for r in report.items}
    done = len(required & answered)
    if done < len(required):
        raise IncompleteInspection(
            f"Incomplete inspection: {done}/{len(required)} items completed",
            details={"completed": done, "total": len(required)},
        )

    now = as_naive_utc(now) if now else utcnow()
    inspection.status = STATUS_COMPLETED
    inspection.completed_at = now
    _take_over(inspection, user)
    report.locked = True
    report.submitted_at = now

    db.commit()
    db.refresh(inspection)
    log.info("inspection %s submitted by user %s", inspection.id, user.id)
    return inspection

# qrinspect/services/inspection_scheduler.py
"""
Recurring inspection scheduler.

For every template: find the last completion, compute the next due date,
and, when no inspection is open and the due date falls inside the lookahead
window, create one for the least-loaded eligible inspector.

The pass is serialized through a database lease (see ``scheduler_lock``) and
each template is handled in its own transaction, so one broken template never
stops the others.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from qrinspect.core.clock import as_naive_utc, utcnow
from qrinspect.core.config import SCHEDULER_LOOKAHEAD_DAYS, SCHEDULER_LOCK_TTL_SECONDS
from qrinspect.core.exceptions import (
    InspectionError,
    InvalidInspector,
    OpenInspectionExists,
    TemplateNotFound,
)
from qrinspect.db.session import SessionLocal
from qrinspect.models.inspection import (
    InspectionInstance,
    OPEN_STATUSES,
    STATUS_COMPLETED,
    STATUS_PENDING,
)
from qrinspect.models.template import Template
from qrinspect.models.user import User, ROLE_INSPECTOR
from qrinspect.services.scheduler_lock import acquire_lock, release_lock

log = logging.getLogger("qrinspect.scheduler")

PASS_LOCK_NAME = "inspection-scheduler"

# Per-template outcomes (also the summary keys)
CREATED = "created"
SKIPPED_OPEN = "skipped_open"
SKIPPED_LOOKAHEAD = "skipped_lookahead"
SKIPPED_NO_INSPECTOR = "skipped_no_inspector"
ERROR = "errors"


# -----------------------------
# Query helpers
# -----------------------------
def last_completed_inspection(db: Session, template_id: int) -> Optional[InspectionInstance]:
    return (
        db.query(InspectionInstance)
        .filter(
            InspectionInstance.template_id == template_id,
            InspectionInstance.status == STATUS_COMPLETED,
            InspectionInstance.completed_at.isnot(None),
        )
        .order_by(InspectionInstance.completed_at.desc(), InspectionInstance.id.desc())
        .first()
    )


def find_open_inspection(db: Session, template_id: int) -> Optional[InspectionInstance]:
    return (
        db.query(InspectionInstance)
        .filter(
            InspectionInstance.template_id == template_id,
            InspectionInstance.status.in_(OPEN_STATUSES),
        )
        .order_by(InspectionInstance.due_date.asc(), InspectionInstance.id.asc())
        .first()
    )


def next_due_date(template: Template, last_completion: Optional[InspectionInstance], now: datetime) -> datetime:
    """frequency_days after the last completion, or after ``now`` if never completed."""
    base = last_completion.completed_at if last_completion is not None else now
    return base + timedelta(days=template.frequency_days)


def eligible_inspectors(db: Session, template: Template) -> List[User]:
    """
    INSPECTOR users of the template's organization (and department, if set), in id order.

    Only active accounts are eligible: a deactivated user with role INSPECTOR
    is never assigned new work.
    """
    q = db.query(User).filter(
        User.organization_id == template.organization_id,
        User.role == ROLE_INSPECTOR,
        User.is_active.is_(True),
    )
    if template.department_id is not None:
        q = q.filter(User.department_id == template.department_id)
    return q.order_by(User.id.asc()).all()


def open_workload(db: Session, inspector_ids: List[int]) -> Dict[int, int]:
    """Open (PENDING / IN_PROGRESS) inspection count per inspector, one grouped query."""
    if not inspector_ids:
        return {}
    rows = (
        db.query(InspectionInstance.inspector_id, func.count(InspectionInstance.id))
        .filter(
            InspectionInstance.inspector_id.in_(inspector_ids),
            InspectionInstance.status.in_(OPEN_STATUSES),
        )
        .group_by(InspectionInstance.inspector_id)
        .all()
    )
    return {inspector_id: int(count) for inspector_id, count in rows}


def pick_least_loaded(inspectors: List[User], workload: Dict[int, int]) -> User:
    # min() keeps the first of equal keys → ties go to query order
    return min(inspectors, key=lambda u: workload.get(u.id, 0))


def _department_for(template: Template, inspector: User) -> int:
    department_id = template.department_id or inspector.department_id
    if department_id is None:
        raise InspectionError(
            "Neither the template nor the inspector has a department",
            details={"template_id": template.id, "inspector_id": inspector.id},
        )
    return department_id


# -----------------------------
# One template
# -----------------------------
def schedule_template(
    db: Session,
    template: Template,
    *,
    now: datetime,
    lookahead_days: int = SCHEDULER_LOOKAHEAD_DAYS,
) -> str:
    """
    Schedule a single template inside the caller's transaction.
    Returns one of the outcome constants; does not commit.
    """
    last = last_completed_inspection(db, template.id)
    due = next_due_date(template, last, now)

    if find_open_inspection(db, template.id) is not None:
        log.debug("template %s: open inspection exists, skip", template.id)
        return SKIPPED_OPEN

    if due > now + timedelta(days=lookahead_days):
        log.debug("template %s: next due %s outside lookahead, skip", template.id, due)
        return SKIPPED_LOOKAHEAD

    inspectors = eligible_inspectors(db, template)
    if not inspectors:
        log.info(
            "template %s (%s): no eligible inspector in org=%s dept=%s, skip",
            template.id,
            template.name,
            template.organization_id,
            template.department_id,
        )
        return SKIPPED_NO_INSPECTOR

    workload = open_workload(db, [u.id for u in inspectors])
    inspector = pick_least_loaded(inspectors, workload)

    inspection = InspectionInstance(
        template_id=template.id,
        inspector_id=inspector.id,
        department_id=_department_for(template, inspector),
        due_date=due,
        status=STATUS_PENDING,
    )
    db.add(inspection)
    db.flush()

    log.info(
        "created inspection %s for template %s (%s), due %s, assigned to %s (open=%s)",
        inspection.id,
        template.id,
        template.name,
        due.isoformat(),
        inspector.email,
        workload.get(inspector.id, 0),
    )
    return CREATED


# -----------------------------
# Whole pass
# -----------------------------
def _empty_summary(lock_acquired: bool) -> Dict[str, int]:
    return {
        "lock_acquired": lock_acquired,
        "templates": 0,
        CREATED: 0,
        SKIPPED_OPEN: 0,
        SKIPPED_LOOKAHEAD: 0,
        SKIPPED_NO_INSPECTOR: 0,
        ERROR: 0,
    }


def run_scheduling_pass(
    session_factory: Callable[[], Session] = SessionLocal,
    *,
    now: Optional[datetime] = None,
    lookahead_days: int = SCHEDULER_LOOKAHEAD_DAYS,
    lock_ttl_seconds: int = SCHEDULER_LOCK_TTL_SECONDS,
) -> dict:
    """
    Create due inspections for every template.

    Never raises: per-template failures, and a failure to take the lock or
    list templates, are logged, rolled back and counted under ``errors``.
    Returns a summary dict.
    """
    now = as_naive_utc(now) if now else utcnow()
    db = session_factory()
    try:
        try:
            token = acquire_lock(db, PASS_LOCK_NAME, ttl_seconds=lock_ttl_seconds, now=now)
        except Exception:
            db.rollback()
            log.exception("scheduling pass aborted: could not acquire lock %s", PASS_LOCK_NAME)
            summary = _empty_summary(lock_acquired=False)
            summary[ERROR] = 1
            return summary
        if token is None:
            log.warning("scheduling pass skipped: another pass holds the lock")
            return _empty_summary(lock_acquired=False)

        summary = _empty_summary(lock_acquired=True)
        try:
            try:
                template_ids = [tid for (tid,) in db.query(Template.id).order_by(Template.id.asc()).all()]
            except Exception:
                db.rollback()
                log.exception("scheduling pass aborted: could not list templates")
                summary[ERROR] += 1
                template_ids = []
            summary["templates"] = len(template_ids)
            log.info("scheduling pass started: %s template(s), now=%s", len(template_ids), now.isoformat())

            for template_id in template_ids:
                try:
                    template = db.get(Template, template_id)
                    if template is None:
                        # deleted since we listed it
                        continue
                    outcome = schedule_template(db, template, now=now, lookahead_days=lookahead_days)
                    db.commit()
                except Exception:
                    db.rollback()
                    log.exception("scheduling failed for template %s", template_id)
                    outcome = ERROR
                summary[outcome] += 1
        finally:
            try:
                release_lock(db, PASS_LOCK_NAME, token)
            except Exception:
                db.rollback()
                log.exception("failed to release lock %s", PASS_LOCK_NAME)

        log.info(
            "scheduling pass done: created=%s open=%s lookahead=%s no_inspector=%s errors=%s",
            summary[CREATED],
            summary[SKIPPED_OPEN],
            summary[SKIPPED_LOOKAHEAD],
            summary[SKIPPED_NO_INSPECTOR],
            summary[ERROR],
        )
        return summary
    finally:
        db.close()


# -----------------------------
# Manual (admin) path
# -----------------------------
def create_inspection_for_template(
    db: Session,
    template_id: int,
    inspector_id: int,
    due_date: Optional[datetime] = None,
    *,
    now: Optional[datetime] = None,
    allow_duplicate_open: bool = False,
) -> InspectionInstance:
    """
    Create an inspection directly, bypassing the schedule.

    Raises:
      TemplateNotFound: unknown template
      InvalidInspector: unknown user, not an INSPECTOR, or from another organization
      OpenInspectionExists: template already has an open inspection and
        ``allow_duplicate_open`` was not set
    """
    template = db.get(Template, template_id)
    if template is None:
        raise TemplateNotFound(template_id)

    inspector = db.get(User, inspector_id)
    if (
        inspector is None
        or inspector.role != ROLE_INSPECTOR
        or inspector.organization_id != template.organization_id
    ):
        raise InvalidInspector(inspector_id)

    if not allow_duplicate_open:
        existing = find_open_inspection(db, template.id)
        if existing is not None:
            raise OpenInspectionExists(template.id, existing.id)

    now = as_naive_utc(now) if now else utcnow()
    inspection = InspectionInstance(
        template_id=template.id,
        inspector_id=inspector.id,
        department_id=_department_for(template, inspector),
        due_date=as_naive_utc(due_date) if due_date else now + timedelta(days=template.frequency_days),
        status=STATUS_PENDING,
    )
    db.add(inspection)
    db.commit()
    db.refresh(inspection)

    log.info(
        "manual inspection %s for template %s assigned to %s (duplicate_open=%s)",
        inspection.id,
        template.id,
        inspector.email,
        allow_duplicate_open,
    )
    return inspection

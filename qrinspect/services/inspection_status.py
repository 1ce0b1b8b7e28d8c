# qrinspect/services/inspection_status.py
"""
Display classification of inspections by due date.

Every view (inspector list, area / organization dashboards) goes through
``classify_inspection`` with the same default buffer, so an inspection never
shows as "due soon" on one screen and "pending" on another.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from qrinspect.core.clock import as_naive_utc, utcnow
from qrinspect.core.config import INSPECTION_BUFFER_DAYS
from qrinspect.models.inspection import STATUS_COMPLETED
from qrinspect.schemas.inspection import InspectionStatusInfo

DEFAULT_BUFFER_DAYS = INSPECTION_BUFFER_DAYS

COMPLETED = "completed"
OVERDUE = "overdue"
DUE_SOON = "due-soon"
PENDING = "pending"

_SECONDS_PER_DAY = 24 * 60 * 60


def days_until(due_date: datetime, now: datetime) -> int:
    """Whole days until ``due_date``, rounded up (negative once it has passed)."""
    return math.ceil((due_date - now).total_seconds() / _SECONDS_PER_DAY)


def classify_inspection(
    due_date: datetime,
    completed_at: Optional[datetime] = None,
    buffer_days: int = DEFAULT_BUFFER_DAYS,
    *,
    now: Optional[datetime] = None,
) -> InspectionStatusInfo:
    """
    Map a due date (+ optional completion) to completed / overdue / due-soon / pending.

    - completion wins regardless of how late it happened
    - diff < 0            → overdue (days_overdue = |diff|)
    - 0 <= diff <= buffer → due-soon (due today counts as due-soon)
    - diff > buffer       → pending
    """
    if completed_at is not None:
        return InspectionStatusInfo(status=COMPLETED, label="Completed", color="green")

    diff_days = days_until(as_naive_utc(due_date), as_naive_utc(now) if now else utcnow())

    if diff_days < 0:
        return InspectionStatusInfo(
            status=OVERDUE, label="Overdue", color="red", days_overdue=abs(diff_days)
        )
    if diff_days <= buffer_days:
        return InspectionStatusInfo(
            status=DUE_SOON, label="Due Soon", color="orange", days_until_due=diff_days
        )
    return InspectionStatusInfo(
        status=PENDING, label="Pending", color="blue", days_until_due=diff_days
    )


def badge_text(info: InspectionStatusInfo) -> str:
    if info.status == COMPLETED:
        return "Completed"
    if info.status == OVERDUE:
        return f"Overdue ({info.days_overdue} days)"
    if info.status in (DUE_SOON, PENDING):
        return f"Due in {info.days_until_due} days"
    return "Unknown"


def summarize_statuses(
    inspections: Iterable[Any],
    buffer_days: int = DEFAULT_BUFFER_DAYS,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Dashboard counters for a collection of inspections (ORM rows or anything
    with ``status``, ``due_date`` and ``completed_at``).

    Rows whose workflow status is COMPLETED count as completed even if
    ``completed_at`` is missing; every other row is active and classified by
    due date.
    """
    now = as_naive_utc(now) if now else utcnow()
    counts = {
        "total_inspections": 0,
        "active_inspections": 0,
        "completed_inspections": 0,
        "pending_inspections": 0,
        "due_soon_inspections": 0,
        "overdue_inspections": 0,
    }
    for row in inspections:
        counts["total_inspections"] += 1
        if getattr(row, "status", None) == STATUS_COMPLETED:
            counts["completed_inspections"] += 1
            continue

        counts["active_inspections"] += 1
        info = classify_inspection(row.due_date, None, buffer_days, now=now)
        if info.status == OVERDUE:
            counts["overdue_inspections"] += 1
        elif info.status == DUE_SOON:
            counts["due_soon_inspections"] += 1
        else:
            counts["pending_inspections"] += 1
    return counts

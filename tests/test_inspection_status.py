from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from qrinspect.services.inspection_status import (
    COMPLETED,
    DUE_SOON,
    OVERDUE,
    PENDING,
    badge_text,
    classify_inspection,
    days_until,
    summarize_statuses,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.mark.parametrize("days", [0, 1, 2, 3])
def test_due_soon_window_is_inclusive(days):
    info = classify_inspection(NOW + timedelta(days=days), now=NOW)
    assert info.status == DUE_SOON
    assert info.days_until_due == days
    assert info.color == "orange"


def test_beyond_buffer_is_pending():
    info = classify_inspection(NOW + timedelta(days=4), now=NOW)
    assert info.status == PENDING
    assert info.days_until_due == 4
    assert info.days_overdue is None


def test_one_day_late_is_overdue():
    info = classify_inspection(NOW - timedelta(days=1), now=NOW)
    assert info.status == OVERDUE
    assert info.days_overdue == 1
    assert info.days_until_due is None
    assert info.color == "red"


def test_partial_days_round_up():
    # 3 days and one minute away rounds up to 4 → no longer "due soon"
    assert days_until(NOW + timedelta(days=3, minutes=1), NOW) == 4
    assert classify_inspection(NOW + timedelta(days=3, minutes=1), now=NOW).status == PENDING
    # a few hours past due rounds up to 0 → still today
    info = classify_inspection(NOW - timedelta(hours=5), now=NOW)
    assert info.status == DUE_SOON
    assert info.days_until_due == 0


def test_custom_buffer_is_honored():
    due = NOW + timedelta(days=5)
    assert classify_inspection(due, buffer_days=3, now=NOW).status == PENDING
    assert classify_inspection(due, buffer_days=7, now=NOW).status == DUE_SOON


@pytest.mark.parametrize("due_offset", [-400, -1, 0, 10])
def test_completion_dominates(due_offset):
    info = classify_inspection(
        NOW + timedelta(days=due_offset),
        completed_at=NOW - timedelta(days=1),
        now=NOW,
    )
    assert info.status == COMPLETED
    assert info.label == "Completed"
    assert info.color == "green"


def test_badge_text():
    assert badge_text(classify_inspection(NOW - timedelta(days=2), now=NOW)) == "Overdue (2 days)"
    assert badge_text(classify_inspection(NOW + timedelta(days=2), now=NOW)) == "Due in 2 days"
    assert badge_text(classify_inspection(NOW, completed_at=NOW, now=NOW)) == "Completed"


def test_summarize_statuses_counts_each_bucket():
    rows = [
        SimpleNamespace(status="COMPLETED", due_date=NOW - timedelta(days=9), completed_at=NOW),
        SimpleNamespace(status="PENDING", due_date=NOW - timedelta(days=2), completed_at=None),
        SimpleNamespace(status="IN_PROGRESS", due_date=NOW + timedelta(days=1), completed_at=None),
        SimpleNamespace(status="PENDING", due_date=NOW + timedelta(days=3), completed_at=None),
        SimpleNamespace(status="PENDING", due_date=NOW + timedelta(days=20), completed_at=None),
    ]
    counts = summarize_statuses(rows, now=NOW)
    assert counts == {
        "total_inspections": 5,
        "active_inspections": 4,
        "completed_inspections": 1,
        "pending_inspections": 1,
        "due_soon_inspections": 2,
        "overdue_inspections": 1,
    }


def test_aware_datetimes_are_compared_in_utc():
    plus_two = timezone(timedelta(hours=2))
    # 2026-03-03 13:00 +02:00 is 11:00 UTC, just under two days away
    info = classify_inspection(datetime(2026, 3, 3, 13, 0, tzinfo=plus_two), now=NOW)
    assert info.status == DUE_SOON
    assert info.days_until_due == 2

    aware_now = NOW.replace(tzinfo=timezone.utc)
    assert classify_inspection(NOW - timedelta(days=1), now=aware_now).days_overdue == 1
    assert classify_inspection(aware_now + timedelta(days=10), now=NOW).status == PENDING


def test_aware_due_date_with_default_clock_does_not_raise():
    info = classify_inspection(datetime.now(timezone.utc) + timedelta(days=2))
    assert info.status == DUE_SOON

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from qrinspect.core.exceptions import InvalidInspector, OpenInspectionExists, TemplateNotFound
from qrinspect.models.inspection import InspectionInstance, STATUS_PENDING
from qrinspect.models.template import Template
from qrinspect.models.user import ROLE_ADMIN
from qrinspect.services import inspection_scheduler
from qrinspect.services.inspection_scheduler import (
    PASS_LOCK_NAME,
    create_inspection_for_template,
    open_workload,
    run_scheduling_pass,
)
from qrinspect.services.scheduler_lock import acquire_lock, release_lock

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _open_for(db, template):
    db.expire_all()
    return (
        db.query(InspectionInstance)
        .filter(InspectionInstance.template_id == template.id, InspectionInstance.status == STATUS_PENDING)
        .all()
    )


@pytest.fixture()
def site(factory):
    org = factory.organization()
    area = factory.area(org)
    dept = factory.department(org, area)
    return org, area, dept


def test_never_completed_template_is_scheduled_from_now(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=5)

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["lock_acquired"] is True
    assert summary["created"] == 1
    [created] = _open_for(db, template)
    assert created.due_date == NOW + timedelta(days=5)
    assert created.inspector_id == inspector.id
    assert created.department_id == dept.id


def test_existing_open_instance_blocks_new_one(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=1)
    factory.inspection(template, inspector, dept, due_date=NOW - timedelta(days=3))

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["created"] == 0
    assert summary["skipped_open"] == 1
    assert len(_open_for(db, template)) == 1


def test_repeated_passes_never_double_schedule(db, factory, session_factory, site):
    org, _, dept = site
    factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=2)

    run_scheduling_pass(session_factory, now=NOW)
    run_scheduling_pass(session_factory, now=NOW + timedelta(hours=1))

    assert len(_open_for(db, template)) == 1


def test_next_due_is_last_completion_plus_frequency(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=30)
    last = NOW - timedelta(days=25)
    factory.completed(template, inspector, dept, completed_at=last - timedelta(days=30))
    factory.completed(template, inspector, dept, completed_at=last)

    run_scheduling_pass(session_factory, now=NOW)

    [created] = _open_for(db, template)
    assert created.due_date == last + timedelta(days=30)
    assert created.due_date != NOW + timedelta(days=30)


@pytest.mark.parametrize(
    "loads, expected_index",
    [
        ((3, 1, 2), 1),
        ((1, 1, 2), 0),
        ((0, 0, 0), 0),
        ((2, 2, 0), 2),
    ],
)
def test_least_loaded_inspector_wins(db, factory, session_factory, site, loads, expected_index):
    org, _, dept = site
    inspectors = [factory.user(org, department=dept) for _ in loads]
    for inspector, load in zip(inspectors, loads):
        if load:
            factory.open_load(inspector, dept, load)
    template = factory.template(org, dept, frequency_days=1)

    run_scheduling_pass(session_factory, now=NOW)

    [created] = _open_for(db, template)
    assert created.inspector_id == inspectors[expected_index].id


def test_workload_is_one_grouped_count(db, factory, site):
    org, _, dept = site
    a = factory.user(org, department=dept)
    b = factory.user(org, department=dept)
    c = factory.user(org, department=dept)
    factory.open_load(a, dept, 2)
    factory.open_load(b, dept, 1)

    assert open_workload(db, [a.id, b.id, c.id]) == {a.id: 2, b.id: 1}
    assert open_workload(db, []) == {}


def test_lookahead_gate(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=30)
    completed_at = NOW - timedelta(days=20)
    factory.completed(template, inspector, dept, completed_at=completed_at)

    # due in 10 days → outside the 7 day window
    summary = run_scheduling_pass(session_factory, now=NOW)
    assert summary["skipped_lookahead"] == 1
    assert _open_for(db, template) == []

    # four days later it is due in 6 days
    summary = run_scheduling_pass(session_factory, now=NOW + timedelta(days=4))
    assert summary["created"] == 1
    [created] = _open_for(db, template)
    assert created.due_date == completed_at + timedelta(days=30)


def test_department_without_inspectors_is_skipped(db, factory, session_factory, site):
    org, area, dept = site
    empty_dept = factory.department(org, area)
    factory.user(org, department=dept)
    template = factory.template(org, empty_dept, frequency_days=1)

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["skipped_no_inspector"] == 1
    assert summary["errors"] == 0
    assert _open_for(db, template) == []


def test_only_active_inspectors_of_the_organization_are_eligible(db, factory, session_factory, site):
    org, _, dept = site
    other_org = factory.organization()
    other_dept = factory.department(other_org)
    factory.user(other_org, department=other_dept)
    factory.user(org, department=dept, is_active=False)
    factory.user(org, role=ROLE_ADMIN, department=dept)
    template = factory.template(org, dept, frequency_days=1)

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["skipped_no_inspector"] == 1
    assert _open_for(db, template) == []


def test_template_without_department_uses_inspector_department(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, None, frequency_days=1)

    run_scheduling_pass(session_factory, now=NOW)

    [created] = _open_for(db, template)
    assert created.inspector_id == inspector.id
    assert created.department_id == dept.id


def test_failing_template_does_not_stop_the_pass(db, factory, session_factory, site):
    org, _, dept = site
    # no department on either side → this template cannot be placed
    factory.user(org, department=None)
    broken = factory.template(org, None, frequency_days=1)
    healthy = factory.template(org, dept, frequency_days=1)
    factory.user(org, department=dept)

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["errors"] == 1
    assert summary["created"] == 1
    assert _open_for(db, broken) == []
    assert len(_open_for(db, healthy)) == 1


def test_pass_is_skipped_while_another_holds_the_lock(db, factory, session_factory, site):
    org, _, dept = site
    factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=1)

    holder = session_factory()
    try:
        token = acquire_lock(holder, PASS_LOCK_NAME, ttl_seconds=600, now=NOW)
        assert token

        summary = run_scheduling_pass(session_factory, now=NOW)
        assert summary["lock_acquired"] is False
        assert summary["created"] == 0
        assert _open_for(db, template) == []

        assert release_lock(holder, PASS_LOCK_NAME, token) is True
    finally:
        holder.close()

    summary = run_scheduling_pass(session_factory, now=NOW)
    assert summary["lock_acquired"] is True
    assert len(_open_for(db, template)) == 1


def test_expired_lease_is_taken_over(db, factory, session_factory, site):
    org, _, dept = site
    factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=1)

    stale = session_factory()
    try:
        assert acquire_lock(stale, PASS_LOCK_NAME, ttl_seconds=60, now=NOW - timedelta(hours=1))
    finally:
        stale.close()

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["lock_acquired"] is True
    assert len(_open_for(db, template)) == 1


# ── Manual path ──────────────────────────────────────────────────────────


def test_manual_unknown_template(db):
    with pytest.raises(TemplateNotFound):
        create_inspection_for_template(db, 9999, 1, now=NOW)


def test_manual_rejects_non_inspectors(db, factory, site):
    org, _, dept = site
    admin = factory.user(org, role=ROLE_ADMIN, department=dept)
    foreign = factory.user(factory.organization())
    template = factory.template(org, dept)

    for bad_id in (admin.id, foreign.id, 424242):
        with pytest.raises(InvalidInspector) as exc:
            create_inspection_for_template(db, template.id, bad_id, now=NOW)
        assert exc.value.inspector_id == bad_id


def test_manual_default_due_date(db, factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=14)

    created = create_inspection_for_template(db, template.id, inspector.id, now=NOW)

    assert created.status == STATUS_PENDING
    assert created.due_date == NOW + timedelta(days=14)
    assert created.department_id == dept.id


def test_manual_normalizes_aware_due_date(db, factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept)
    due = datetime(2026, 3, 10, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    created = create_inspection_for_template(db, template.id, inspector.id, due, now=NOW)

    assert created.due_date == datetime(2026, 3, 10, 12, 0)


def test_manual_refuses_second_open_unless_forced(db, factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept)
    first = create_inspection_for_template(db, template.id, inspector.id, now=NOW)

    with pytest.raises(OpenInspectionExists) as exc:
        create_inspection_for_template(db, template.id, inspector.id, now=NOW)
    assert exc.value.inspection_id == first.id

    second = create_inspection_for_template(
        db, template.id, inspector.id, now=NOW, allow_duplicate_open=True
    )
    assert second.id != first.id
    assert len(_open_for(db, template)) == 2


def test_aware_now_is_normalized_to_utc(db, factory, session_factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=30)
    completed_at = datetime(2026, 2, 1, 12, 0)
    factory.completed(template, inspector, dept, completed_at=completed_at)

    summary = run_scheduling_pass(session_factory, now=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))

    assert summary["errors"] == 0
    assert summary["created"] == 1
    [created] = _open_for(db, template)
    assert created.due_date == completed_at + timedelta(days=30)
    assert created.due_date.tzinfo is None


def test_manual_default_due_date_with_aware_now(db, factory, site):
    org, _, dept = site
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=7)
    aware_now = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    created = create_inspection_for_template(db, template.id, inspector.id, now=aware_now)

    assert created.due_date == datetime(2026, 3, 8, 12, 0)


def test_lock_failure_is_reported_not_raised(factory, session_factory, site, monkeypatch):
    org, _, dept = site
    factory.user(org, department=dept)
    factory.template(org, dept, frequency_days=1)

    def broken_lock(*args, **kwargs):
        raise OperationalError("UPDATE scheduler_locks", {}, Exception("database is locked"))

    monkeypatch.setattr(inspection_scheduler, "acquire_lock", broken_lock)

    summary = run_scheduling_pass(session_factory, now=NOW)

    assert summary["lock_acquired"] is False
    assert summary["errors"] == 1
    assert summary["created"] == 0


def test_template_listing_failure_is_reported_and_lock_released(db, factory, session_factory, site):
    org, _, dept = site
    factory.user(org, department=dept)
    template = factory.template(org, dept, frequency_days=1)

    real_factory = session_factory

    def failing_query_session():
        session = real_factory()
        real_query = session.query

        def query(*entities, **kwargs):
            if entities and entities[0] is Template.id:
                raise OperationalError("SELECT templates.id", {}, Exception("disk I/O error"))
            return real_query(*entities, **kwargs)

        session.query = query
        return session

    summary = run_scheduling_pass(failing_query_session, now=NOW)

    assert summary["lock_acquired"] is True
    assert summary["errors"] == 1
    assert summary["templates"] == 0

    # the lease was released, so the next pass runs normally
    summary = run_scheduling_pass(session_factory, now=NOW)
    assert summary["created"] == 1
    assert len(_open_for(db, template)) == 1

from datetime import datetime, timedelta

import pytest

from qrinspect.core.exceptions import (
    AccessDenied,
    ChecklistItemNotFound,
    IncompleteInspection,
    InspectionLocked,
    InspectionNotFound,
    NoActiveInspection,
    QrCodeNotFound,
)
from qrinspect.models.inspection import STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_PENDING
from qrinspect.models.user import ROLE_ADMIN, ROLE_MINI_ADMIN
from qrinspect.services.inspection_workflow import (
    get_inspection_for_user,
    resolve_qr_scan,
    save_item_result,
    submit_inspection,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture()
def setup(factory):
    org = factory.organization()
    area = factory.area(org)
    dept = factory.department(org, area)
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, items=3)
    inspection = factory.inspection(template, inspector, dept, due_date=NOW + timedelta(days=2))
    return {
        "org": org,
        "area": area,
        "dept": dept,
        "inspector": inspector,
        "template": template,
        "inspection": inspection,
        "items": list(template.checklist_items),
    }


def _answer_all(db, user, setup, approved=True):
    for item in setup["items"]:
        save_item_result(db, user, setup["inspection"].id, item.id, approved=approved)


def test_first_saved_item_starts_the_inspection(db, setup):
    inspection = setup["inspection"]
    assert inspection.status == STATUS_PENDING

    result = save_item_result(
        db, setup["inspector"], inspection.id, setup["items"][0].id, approved=True, comments="ok"
    )

    db.refresh(inspection)
    assert inspection.status == STATUS_IN_PROGRESS
    assert inspection.report is not None
    assert result.approved is True
    assert result.comments == "ok"


def test_saving_again_updates_and_keeps_image(db, setup):
    inspector, inspection, item = setup["inspector"], setup["inspection"], setup["items"][0]
    save_item_result(db, inspector, inspection.id, item.id, approved=True, image_url="https://img/1.jpg")

    result = save_item_result(db, inspector, inspection.id, item.id, approved=False, comments="broken")

    assert result.approved is False
    assert result.comments == "broken"
    assert result.image_url == "https://img/1.jpg"
    db.refresh(inspection)
    assert len(inspection.report.items) == 1


def test_item_from_another_template_is_rejected(db, factory, setup):
    other = factory.template(setup["org"], setup["dept"], items=1)
    with pytest.raises(ChecklistItemNotFound):
        save_item_result(
            db, setup["inspector"], setup["inspection"].id, other.checklist_items[0].id, approved=True
        )


def test_colleague_in_same_department_takes_over(db, factory, setup):
    colleague = factory.user(setup["org"], department=setup["dept"])
    save_item_result(db, colleague, setup["inspection"].id, setup["items"][0].id, approved=True)

    db.refresh(setup["inspection"])
    assert setup["inspection"].inspector_id == colleague.id


def test_admin_edit_keeps_assignee(db, factory, setup):
    admin = factory.user(setup["org"], role=ROLE_ADMIN)
    save_item_result(db, admin, setup["inspection"].id, setup["items"][0].id, approved=True)

    db.refresh(setup["inspection"])
    assert setup["inspection"].inspector_id == setup["inspector"].id


def test_inspector_of_other_department_is_denied(db, factory, setup):
    other_dept = factory.department(setup["org"])
    outsider = factory.user(setup["org"], department=other_dept)
    with pytest.raises(AccessDenied):
        get_inspection_for_user(db, outsider, setup["inspection"].id)


def test_mini_admin_scope_is_the_area(db, factory, setup):
    own = factory.user(setup["org"], role=ROLE_MINI_ADMIN, area=setup["area"])
    other_area = factory.area(setup["org"])
    foreign = factory.user(setup["org"], role=ROLE_MINI_ADMIN, area=other_area)

    assert get_inspection_for_user(db, own, setup["inspection"].id).id == setup["inspection"].id
    with pytest.raises(AccessDenied):
        get_inspection_for_user(db, foreign, setup["inspection"].id)


def test_unknown_inspection(db, setup):
    with pytest.raises(InspectionNotFound):
        get_inspection_for_user(db, setup["inspector"], 9999)


def test_submit_requires_every_item(db, setup):
    inspector, inspection = setup["inspector"], setup["inspection"]

    with pytest.raises(IncompleteInspection, match="No inspection report found"):
        submit_inspection(db, inspector, inspection.id, now=NOW)

    save_item_result(db, inspector, inspection.id, setup["items"][0].id, approved=True)
    with pytest.raises(IncompleteInspection) as exc:
        submit_inspection(db, inspector, inspection.id, now=NOW)
    assert exc.value.message == "Incomplete inspection: 1/3 items completed"
    assert exc.value.details == {"completed": 1, "total": 3}


def test_submit_completes_and_locks(db, setup):
    inspector, inspection = setup["inspector"], setup["inspection"]
    _answer_all(db, inspector, setup)

    done = submit_inspection(db, inspector, inspection.id, now=NOW)

    assert done.status == STATUS_COMPLETED
    assert done.completed_at == NOW
    assert done.report.locked is True
    assert done.report.submitted_at == NOW

    with pytest.raises(InspectionLocked):
        save_item_result(db, inspector, inspection.id, setup["items"][0].id, approved=False)
    with pytest.raises(InspectionLocked):
        submit_inspection(db, inspector, inspection.id, now=NOW)


def test_qr_scan_picks_earliest_due_open_inspection(db, factory, setup):
    inspector, template, dept = setup["inspector"], setup["template"], setup["dept"]
    earlier = factory.inspection(template, inspector, dept, due_date=NOW - timedelta(days=1))
    item = setup["items"][1]

    out = resolve_qr_scan(db, inspector, item.qr_code_id)

    assert out == {
        "inspection_id": earlier.id,
        "item_id": item.id,
        "item_name": item.name,
        "template_name": template.name,
        "item_order": item.order,
    }


def test_qr_scan_errors(db, factory, setup):
    with pytest.raises(QrCodeNotFound):
        resolve_qr_scan(db, setup["inspector"], "does-not-exist")

    idle = factory.template(setup["org"], setup["dept"], items=1)
    with pytest.raises(NoActiveInspection):
        resolve_qr_scan(db, setup["inspector"], idle.checklist_items[0].qr_code_id)

import re
from datetime import datetime

import pytest

from qrinspect.core.exceptions import InspectionError
from qrinspect.services.inspection_workflow import save_item_result, submit_inspection
from qrinspect.services.reports.inspection_pdf import (
    build_report_payload,
    generate_inspection_report,
    render_inspection_pdf,
    report_filename,
)

COMPLETED_AT = datetime(2026, 3, 2, 9, 30)


def test_filename_transliterates_and_collapses():
    name = report_filename("Brand & Sikkerhed", "Værksted Øst", "Århus Nord", COMPLETED_AT)
    assert name == "inspection_aarhus_nord_vaerksted_oest_brand_sikkerhed_2026-03-02.pdf"


def test_filename_without_area():
    assert report_filename("Daily", "Dock 1", None, COMPLETED_AT) == (
        "inspection_unknown_area_dock_1_daily_2026-03-02.pdf"
    )


@pytest.fixture()
def completed_inspection(db, factory):
    org = factory.organization()
    area = factory.area(org, name="North")
    dept = factory.department(org, area, name="Workshop")
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, items=3, name="Fire round")
    inspection = factory.inspection(template, inspector, dept, due_date=COMPLETED_AT)
    for idx, item in enumerate(template.checklist_items):
        save_item_result(
            db,
            inspector,
            inspection.id,
            item.id,
            approved=idx != 1,
            comments="Needs new seal " * 20 if idx == 1 else None,
        )
    return submit_inspection(db, inspector, inspection.id, now=COMPLETED_AT)


def test_payload_summary_and_order(completed_inspection):
    payload = build_report_payload(completed_inspection)

    assert payload["summary"] == {"approved": 2, "not_approved": 1, "total": 3}
    assert [i["name"] for i in payload["items"]] == ["Item 1", "Item 2", "Item 3"]
    assert payload["department"] == "Workshop"
    assert payload["area"] == "North"
    assert payload["completed_at_display"] == "02-03-2026 09:30 UTC"
    assert payload["filename"] == "inspection_north_workshop_fire_round_2026-03-02.pdf"


def test_render_produces_pdf_bytes(completed_inspection):
    out = generate_inspection_report(completed_inspection)

    assert out["pdf_bytes"].startswith(b"%PDF")
    assert out["filename"].endswith(".pdf")


def test_long_reports_break_pages():
    payload = {
        "inspection_id": 1,
        "generated_at": "2026-03-02T10:00:00",
        "template": {"name": "Big", "description": None},
        "inspector": {"name": "A", "email": "a@example.com"},
        "department": "D",
        "area": None,
        "due_date_display": "01-03-2026",
        "completed_at_display": "02-03-2026 09:30 UTC",
        "summary": {"approved": 80, "not_approved": 0, "total": 80},
        "items": [
            {"name": f"Item {n}", "approved": True, "location": "Hall", "comments": "fine"}
            for n in range(80)
        ],
    }
    pdf = render_inspection_pdf(payload)
    assert pdf.startswith(b"%PDF")
    page_count = max(int(n) for n in re.findall(rb"/Count (\d+)", pdf))
    assert page_count > 1


def test_open_inspection_cannot_be_rendered(factory):
    org = factory.organization()
    dept = factory.department(org)
    inspector = factory.user(org, department=dept)
    template = factory.template(org, dept, items=1)
    inspection = factory.inspection(template, inspector, dept)

    with pytest.raises(InspectionError):
        build_report_payload(inspection)

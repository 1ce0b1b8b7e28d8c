# qrinspect/services/reports/inspection_pdf.py
from __future__ import annotations

import io
import re
from datetime import datetime, date
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from qrinspect.core.clock import utcnow
from qrinspect.core.exceptions import InspectionError
from qrinspect.models.inspection import InspectionInstance, STATUS_COMPLETED

MARGIN = 50
FOOTER_SPACE = 60
BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"


# -----------------------------
# Helpers (ISO + human-readable)
# -----------------------------
def _iso(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return str(v)


def _fmt_display(v: Optional[datetime], *, with_time: bool = True) -> Optional[str]:
    """Human-readable: DD-MM-YYYY HH:MM UTC (or date only)."""
    if v is None:
        return None
    if not with_time:
        return v.strftime("%d-%m-%Y")
    return v.strftime("%d-%m-%Y %H:%M") + " UTC"


_TRANSLIT = (("æ", "ae"), ("ø", "oe"), ("å", "aa"))


def _sanitize_for_filename(value: str) -> str:
    s = (value or "").lower()
    for src, dst in _TRANSLIT:
        s = s.replace(src, dst)
    s = re.sub(r"[^a-z0-9]", "_", s)
    s = re.sub(r"_+", "_", s)
    return s.strip("_")


def report_filename(
    template_name: str,
    department_name: str,
    area_name: Optional[str],
    completed_at: Optional[datetime],
) -> str:
    """inspection_<area>_<department>_<template>_<YYYY-MM-DD>.pdf"""
    day = (completed_at or utcnow()).date().isoformat()
    area = _sanitize_for_filename(area_name) if area_name else "unknown_area"
    return (
        f"inspection_{area}_{_sanitize_for_filename(department_name)}_"
        f"{_sanitize_for_filename(template_name)}_{day}.pdf"
    )


# -----------------------------
# Data aggregation
# -----------------------------
def build_report_payload(inspection: InspectionInstance) -> Dict[str, Any]:
    """
    Flatten a completed inspection (with report, template, inspector,
    department/area) into a plain dict for rendering or JSON export.
    """
    if inspection.status != STATUS_COMPLETED:
        raise InspectionError("Inspection must be completed before generating PDF")
    report = inspection.report
    if report is None:
        raise InspectionError("Inspection report not found")

    template = inspection.template
    inspector = inspection.inspector
    department = inspection.department
    area = department.area if department is not None else None

    rows = sorted(report.items, key=lambda r: (r.checklist_item.order, r.checklist_item.id))
    items: List[Dict[str, Any]] = [
        {
            "name": r.checklist_item.name,
            "description": r.checklist_item.description,
            "location": r.checklist_item.location,
            "approved": bool(r.approved),
            "comments": r.comments,
            "image_url": r.image_url,
        }
        for r in rows
    ]
    approved = sum(1 for i in items if i["approved"])

    return {
        "inspection_id": inspection.id,
        "generated_at": _iso(utcnow().replace(microsecond=0)),
        "template": {"name": template.name, "description": template.description},
        "inspector": {"name": inspector.name or inspector.email, "email": inspector.email},
        "department": getattr(department, "name", None),
        "area": getattr(area, "name", None),
        "due_date": _iso(inspection.due_date),
        "due_date_display": _fmt_display(inspection.due_date, with_time=False),
        "completed_at": _iso(inspection.completed_at),
        "completed_at_display": _fmt_display(inspection.completed_at),
        "summary": {
            "approved": approved,
            "not_approved": len(items) - approved,
            "total": len(items),
        },
        "items": items,
        "filename": report_filename(
            template.name,
            getattr(department, "name", "") or "",
            getattr(area, "name", None),
            inspection.completed_at,
        ),
    }


# -----------------------------
# PDF generation (reportlab)
# -----------------------------
class _Writer:
    """Tiny cursor over a reportlab canvas that handles page breaks."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def ensure(self, space: float) -> None:
        if self.y - space < FOOTER_SPACE:
            self.c.showPage()
            self.y = self.height - MARGIN

    def line(self, text: str, *, font: str = BODY_FONT, size: int = 10, indent: float = 0,
             color=colors.black, leading: Optional[float] = None) -> None:
        leading = leading or size * 1.4
        max_width = self.width - 2 * MARGIN - indent
        for part in simpleSplit(text or "", font, size, max_width) or [""]:
            self.ensure(leading)
            self.c.setFont(font, size)
            self.c.setFillColor(color)
            self.c.drawString(MARGIN + indent, self.y, part)
            self.y -= leading
        self.c.setFillColor(colors.black)

    def gap(self, h: float) -> None:
        self.y -= h

    def rule(self) -> None:
        self.c.setLineWidth(0.5)
        self.c.line(MARGIN, self.y, self.width - MARGIN, self.y)
        self.y -= 12


def render_inspection_pdf(payload: Dict[str, Any]) -> bytes:
    """Return PDF bytes for a payload produced by ``build_report_payload``."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Inspection report #{payload.get('inspection_id')}")
    w = _Writer(c)

    w.line("INSPECTION REPORT", font=BOLD_FONT, size=20, leading=26)
    w.rule()

    # Details
    w.line("INSPECTION DETAILS", font=BOLD_FONT, size=12, leading=18)
    details = [
        f"Template: {payload['template']['name']}",
        f"Inspector: {payload['inspector']['name']}",
        f"Department: {payload.get('department') or '-'}",
    ]
    if payload.get("area"):
        details.append(f"Area: {payload['area']}")
    details += [
        f"Due Date: {payload.get('due_date_display') or '-'}",
        f"Completed: {payload.get('completed_at_display') or '-'}",
    ]
    for d in details:
        w.line(d)
    if payload["template"].get("description"):
        w.gap(4)
        w.line(payload["template"]["description"], size=9, color=colors.grey)
    w.gap(10)

    # Summary box
    summary = payload["summary"]
    w.line("SUMMARY", font=BOLD_FONT, size=12, leading=18)
    box_h = 52 if summary["not_approved"] else 38
    w.ensure(box_h + 10)
    c.setStrokeColorRGB(0.78, 0.78, 0.78)
    c.setFillColorRGB(0.97, 0.976, 0.98)
    c.rect(MARGIN, w.y - box_h + 12, w.width - 2 * MARGIN, box_h, stroke=1, fill=1)
    c.setStrokeColor(colors.black)
    w.gap(4)
    w.line(f"Approved: {summary['approved']}", indent=10, color=colors.green)
    if summary["not_approved"]:
        w.line(f"Not Approved: {summary['not_approved']}", indent=10, color=colors.red)
    w.line(f"Total Items: {summary['total']}", indent=10)
    w.gap(16)

    # Items
    w.line("CHECKLIST ITEMS", font=BOLD_FONT, size=12, leading=18)
    for idx, item in enumerate(payload["items"], start=1):
        w.ensure(40)
        verdict = "APPROVED" if item["approved"] else "NOT APPROVED"
        w.line(
            f"{idx}. {item['name']}  [{verdict}]",
            font=BOLD_FONT,
            size=10,
            color=colors.green if item["approved"] else colors.red,
        )
        if item.get("location"):
            w.line(f"Location: {item['location']}", indent=14, size=9)
        if item.get("description"):
            w.line(item["description"], indent=14, size=9, color=colors.grey)
        if item.get("comments"):
            w.line(f"Comments: {item['comments']}", indent=14, size=9)
        if item.get("image_url"):
            w.line(f"Photo: {item['image_url']}", indent=14, size=8, color=colors.blue)
        w.gap(6)

    # Footer on the last page
    c.setFont(BODY_FONT, 8)
    c.setFillColor(colors.grey)
    c.drawString(MARGIN, 30, f"Generated {payload.get('generated_at')} UTC")

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.getvalue()


def generate_inspection_report(inspection: InspectionInstance) -> Dict[str, Any]:
    """Main entry point used by the API: returns payload, filename and pdf bytes."""
    payload = build_report_payload(inspection)
    return {
        "payload": payload,
        "filename": payload["filename"],
        "pdf_bytes": render_inspection_pdf(payload),
    }

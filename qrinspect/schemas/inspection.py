# qrinspect/schemas/inspection.py
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict, conint

InspectionStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED"]
# Display classification (see services.inspection_status)
DisplayStatus = Literal["completed", "overdue", "due-soon", "pending"]


class InspectionStatusInfo(BaseModel):
    status: DisplayStatus
    label: str
    color: str
    days_until_due: Optional[int] = None
    days_overdue: Optional[int] = None


class InspectionCreate(BaseModel):
    template_id: conint(ge=1) = Field(..., description="Template to instantiate.")
    inspector_id: conint(ge=1) = Field(..., description="User (role INSPECTOR) to assign.")
    due_date: Optional[datetime] = Field(
        None, description="Due date (ISO 8601). Defaults to now + template frequency."
    )
    force: bool = Field(
        False,
        description="Create even if the template already has an open inspection.",
    )


class InspectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    inspector_id: int
    department_id: int
    due_date: datetime
    status: InspectionStatus
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class InspectionListItem(InspectionOut):
    template_name: Optional[str] = None
    department_name: Optional[str] = None
    inspector_name: Optional[str] = None
    inspector_email: Optional[str] = None
    display: InspectionStatusInfo
    badge: Optional[str] = None


class ItemResultIn(BaseModel):
    approved: bool = Field(..., description="Checklist item passed.")
    comments: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = Field(
        None, max_length=2048, description="Public URL of an already-uploaded photo."
    )


class ItemResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    checklist_item_id: int
    approved: bool
    comments: Optional[str] = None
    image_url: Optional[str] = None


class QrScanOut(BaseModel):
    inspection_id: int
    item_id: int
    item_name: str
    template_name: str
    item_order: int


class SchedulingPassOut(BaseModel):
    lock_acquired: bool
    templates: int = 0
    created: int = 0
    skipped_open: int = 0
    skipped_lookahead: int = 0
    skipped_no_inspector: int = 0
    errors: int = 0


class InspectionStats(BaseModel):
    total_inspections: int = 0
    active_inspections: int = 0
    completed_inspections: int = 0
    pending_inspections: int = 0
    due_soon_inspections: int = 0
    overdue_inspections: int = 0


class DashboardStats(InspectionStats):
    scope: str  # "global" | "organization" | "area" | "department"
    total_organizations: Optional[int] = None
    total_areas: Optional[int] = None
    total_departments: Optional[int] = None
    total_users: Optional[int] = None
    total_templates: Optional[int] = None


class ChecklistProgressItem(BaseModel):
    item_id: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    order: int
    result: Optional[ItemResultOut] = None


class InspectionDetail(InspectionListItem):
    report_locked: bool = False
    submitted_at: Optional[datetime] = None
    completed_items: int = 0
    total_items: int = 0
    items: List[ChecklistProgressItem] = []

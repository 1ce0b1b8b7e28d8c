# qrinspect/schemas/template.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, conint, constr


class TemplateBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(
        ..., description="Template name."
    )
    description: Optional[str] = Field(None, description="Free text shown on the report.")
    department_id: Optional[conint(ge=1)] = Field(
        None, description="Restrict scheduling to inspectors of this department."
    )
    frequency_days: conint(ge=1, le=3650) = Field(
        30, description="Days between completions."
    )


class TemplateCreate(TemplateBase):
    organization_id: Optional[conint(ge=1)] = Field(
        None, description="Required for Super Admin; ignored for other roles."
    )


class TemplateUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None
    department_id: Optional[conint(ge=1)] = None
    frequency_days: Optional[conint(ge=1, le=3650)] = None


class ChecklistItemBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[constr(strip_whitespace=True, max_length=255)] = None


class ChecklistItemCreate(ChecklistItemBase):
    pass


class ChecklistItemUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None
    location: Optional[constr(strip_whitespace=True, max_length=255)] = None


class ChecklistReorder(BaseModel):
    item_ids: List[conint(ge=1)] = Field(..., min_length=1, description="New order, first to last.")


class ChecklistItemOut(ChecklistItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    order: int
    qr_code_id: str


class TemplateOut(TemplateBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    created_at: datetime
    updated_at: datetime
    checklist_items: List[ChecklistItemOut] = []


class ChecklistItemQrOut(ChecklistItemOut):
    qr_code_url: str = Field(..., description="PNG data URL of the item's QR code.")

# qrinspect/schemas/organization.py
from typing import Optional
from pydantic import BaseModel, ConfigDict, conint, constr


class OrganizationIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)


class OrganizationOut(OrganizationIn):
    model_config = ConfigDict(from_attributes=True)

    id: int


class AreaIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)


class AreaOut(AreaIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int


class DepartmentIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    area_id: Optional[conint(ge=1)] = None


class DepartmentOut(DepartmentIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int

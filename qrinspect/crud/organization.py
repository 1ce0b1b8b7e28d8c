# qrinspect/crud/organization.py
from typing import List, Optional

from sqlalchemy.orm import Session

from qrinspect.models.organization import Organization, Area, Department


def get_organization(db: Session, organization_id: int) -> Optional[Organization]:
    return db.get(Organization, organization_id)


def list_organizations(db: Session) -> List[Organization]:
    return db.query(Organization).order_by(Organization.name.asc(), Organization.id.asc()).all()


def create_organization(db: Session, name: str) -> Organization:
    obj = Organization(name=name)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_area(db: Session, area_id: int) -> Optional[Area]:
    return db.get(Area, area_id)


def list_areas(db: Session, organization_id: int) -> List[Area]:
    return (
        db.query(Area)
        .filter(Area.organization_id == organization_id)
        .order_by(Area.name.asc(), Area.id.asc())
        .all()
    )


def create_area(db: Session, organization_id: int, name: str) -> Area:
    obj = Area(organization_id=organization_id, name=name)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_department(db: Session, department_id: int) -> Optional[Department]:
    return db.get(Department, department_id)


def list_departments(
    db: Session, organization_id: int, area_id: Optional[int] = None
) -> List[Department]:
    q = db.query(Department).filter(Department.organization_id == organization_id)
    if area_id is not None:
        q = q.filter(Department.area_id == area_id)
    return q.order_by(Department.name.asc(), Department.id.asc()).all()


def create_department(
    db: Session, organization_id: int, name: str, area_id: Optional[int] = None
) -> Department:
    obj = Department(organization_id=organization_id, name=name, area_id=area_id)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def rename(db: Session, obj, name: str):
    obj.name = name
    db.commit()
    db.refresh(obj)
    return obj


def delete(db: Session, obj) -> None:
    db.delete(obj)
    db.commit()

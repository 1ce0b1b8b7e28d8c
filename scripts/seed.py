#!/usr/bin/env python3
"""
Seed:
- Ensures a SUPER_ADMIN user exists.
- With SEED_DEMO=1 also creates a demo organization (area, department,
  admin, two inspectors, one template with three checklist items).
- Safe to run multiple times (idempotent).
"""
import os

from sqlalchemy.orm import Session

from qrinspect.crud.template import new_qr_code_id
from qrinspect.core.security import hash_password
from qrinspect.db.base import Base
from qrinspect.db.session import SessionLocal, engine
from qrinspect.models.organization import Organization, Area, Department
from qrinspect.models.template import Template, ChecklistItem
from qrinspect.models.user import (
    User,
    ROLE_SUPER_ADMIN,
    ROLE_ADMIN,
    ROLE_INSPECTOR,
)
import qrinspect.models  # noqa: F401


def ensure_user(db: Session, email: str, password: str, role: str, **fields) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        changed = False
        if user.role != role:
            user.role = role
            changed = True
        if not user.is_active:
            user.is_active = True
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user

    u = User(email=email, hashed_password=hash_password(password), role=role, is_active=True, **fields)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def _get_or_create(db: Session, model, **filters):
    obj = db.query(model).filter_by(**filters).first()
    if obj:
        return obj
    obj = model(**filters)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def seed_demo(db: Session) -> None:
    org = _get_or_create(db, Organization, name="Demo Facilities")
    area = _get_or_create(db, Area, name="North Site", organization_id=org.id)
    dept = _get_or_create(db, Department, name="Maintenance", organization_id=org.id, area_id=area.id)

    ensure_user(db, "admin@demo.example.com", "AdminPass123", ROLE_ADMIN, name="Demo Admin", organization_id=org.id)
    for n in (1, 2):
        ensure_user(
            db,
            f"inspector{n}@demo.example.com",
            "InspectorPass123",
            ROLE_INSPECTOR,
            name=f"Inspector {n}",
            organization_id=org.id,
            area_id=area.id,
            department_id=dept.id,
        )

    template = db.query(Template).filter_by(name="Fire safety round", organization_id=org.id).first()
    if template is None:
        template = Template(
            name="Fire safety round",
            description="Weekly walk-through of extinguishers and exits.",
            organization_id=org.id,
            department_id=dept.id,
            frequency_days=7,
        )
        db.add(template)
        db.flush()
        for idx, (name, location) in enumerate(
            [
                ("Extinguisher pressure", "Hall A"),
                ("Emergency exit clear", "Stairwell 2"),
                ("Exit signs lit", "Ground floor"),
            ]
        ):
            db.add(
                ChecklistItem(
                    template_id=template.id,
                    name=name,
                    location=location,
                    order=idx,
                    qr_code_id=new_qr_code_id(),
                )
            )
        db.commit()


def main():
    email = os.environ.get("SEED_SUPERADMIN_EMAIL", "admin@example.com")
    password = os.environ.get("SEED_SUPERADMIN_PASSWORD", "ChangeMe123!")

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        u = ensure_user(db, email, password, ROLE_SUPER_ADMIN, name="Super Admin")
        print(f"OK: SuperAdmin ensured -> {u.email} (id={u.id})")
        if os.environ.get("SEED_DEMO") == "1":
            seed_demo(db)
            print("OK: demo organization seeded")
    finally:
        db.close()


if __name__ == "__main__":
    main()

"""
Shared pytest fixtures.

Provides:
    - engine / session_factory / db: in-memory SQLite, fresh schema per test
    - factory: helpers creating organizations, users, templates, inspections
    - client: FastAPI TestClient wired to the same database
    - auth_headers: bearer header for a given user
"""
import os

# Must be set before qrinspect.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENABLE_SCHEDULER"] = "0"
os.environ["ENABLE_CREATE_ALL"] = "0"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["CRON_SECRET"] = "test-cron-secret"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import qrinspect.models  # noqa: E402,F401
from qrinspect.core.security import create_access_token, hash_password  # noqa: E402
from qrinspect.db.base import Base  # noqa: E402
from qrinspect.db.session import enable_sqlite_foreign_keys  # noqa: E402
from qrinspect.models.inspection import (  # noqa: E402
    InspectionInstance,
    InspectionReport,
    STATUS_COMPLETED,
    STATUS_PENDING,
)
from qrinspect.models.organization import Organization, Area, Department  # noqa: E402
from qrinspect.models.template import Template, ChecklistItem  # noqa: E402
from qrinspect.models.user import User, ROLE_INSPECTOR  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0)
TEST_PASSWORD = "Passw0rd!"


# ── DB fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    event.listen(eng, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def now():
    return NOW


# ── Factories ────────────────────────────────────────────────────────────


class Factory:
    """Small helpers that create and commit rows with sensible defaults."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def organization(self, name=None):
        return self._save(Organization(name=name or f"Org {self._next()}"))

    def area(self, org, name=None):
        return self._save(Area(name=name or f"Area {self._next()}", organization_id=org.id))

    def department(self, org, area=None, name=None):
        return self._save(
            Department(
                name=name or f"Dept {self._next()}",
                organization_id=org.id,
                area_id=area.id if area else None,
            )
        )

    def user(self, org=None, role=ROLE_INSPECTOR, department=None, area=None, email=None, **kw):
        n = self._next()
        return self._save(
            User(
                email=email or f"user{n}@example.com",
                hashed_password=hash_password(TEST_PASSWORD),
                name=f"User {n}",
                role=role,
                organization_id=org.id if org else None,
                area_id=area.id if area else (department.area_id if department else None),
                department_id=department.id if department else None,
                **kw,
            )
        )

    def template(self, org, department=None, frequency_days=30, items=0, name=None):
        t = self._save(
            Template(
                name=name or f"Template {self._next()}",
                organization_id=org.id,
                department_id=department.id if department else None,
                frequency_days=frequency_days,
            )
        )
        for idx in range(items):
            self.db.add(
                ChecklistItem(
                    template_id=t.id,
                    name=f"Item {idx + 1}",
                    order=idx,
                    qr_code_id=f"qr-{t.id}-{idx}",
                )
            )
        if items:
            self.db.commit()
            self.db.refresh(t)
        return t

    def inspection(self, template, inspector, department, due_date=None, status=STATUS_PENDING, completed_at=None):
        return self._save(
            InspectionInstance(
                template_id=template.id,
                inspector_id=inspector.id,
                department_id=department.id,
                due_date=due_date or NOW,
                status=status,
                completed_at=completed_at,
            )
        )

    def completed(self, template, inspector, department, completed_at):
        inspection = self.inspection(
            template,
            inspector,
            department,
            due_date=completed_at,
            status=STATUS_COMPLETED,
            completed_at=completed_at,
        )
        self._save(InspectionReport(inspection_id=inspection.id, locked=True, submitted_at=completed_at))
        return inspection

    def open_load(self, inspector, department, count):
        """Give ``inspector`` ``count`` open inspections on a throwaway template."""
        org = self.db.get(Organization, inspector.organization_id)
        filler = self.template(org, department, frequency_days=365)
        for _ in range(count):
            self.inspection(filler, inspector, department, due_date=NOW + timedelta(days=30))
        return filler


@pytest.fixture()
def factory(db):
    return Factory(db)


# ── HTTP fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def client(session_factory):
    from fastapi.testclient import TestClient

    from qrinspect.core.auth import get_db, get_session_factory
    from qrinspect.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers

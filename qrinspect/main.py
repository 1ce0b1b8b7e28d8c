# qrinspect/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from qrinspect import __version__
from qrinspect.core import config
from qrinspect.core.errors import register_exception_handlers
from qrinspect.core.logging_config import configure_logging
from qrinspect.db.base import Base
from qrinspect.db.session import engine
from qrinspect.middleware.request_logging import RequestLoggingMiddleware
from qrinspect.worker.scheduler import make_scheduler

# ---------------------------
# MODELS (registers every table on Base.metadata)
# ---------------------------
import qrinspect.models  # noqa: F401

# ---------------------------
# ROUTERS
# ---------------------------
from qrinspect.api import health
from qrinspect.api.v1 import auth, organizations, users, templates, inspections, stats, cron

configure_logging()
log = logging.getLogger("qrinspect.main")

# ---------------------------
# CREATE TABLES (dev-only; production runs alembic)
# ---------------------------
if config.ENABLE_CREATE_ALL:
    Base.metadata.create_all(bind=engine)

# ---------------------------
# APP
# ---------------------------
app = FastAPI(title="QR Inspect", version=__version__)

register_exception_handlers(app)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(organizations.router, prefix="/api/v1", tags=["organizations"])
app.include_router(users.router, prefix="/api/v1", tags=["users"])
app.include_router(templates.router, prefix="/api/v1", tags=["templates"])
app.include_router(inspections.router, prefix="/api/v1", tags=["inspections"])
app.include_router(stats.router, prefix="/api/v1", tags=["stats"])
app.include_router(cron.router, prefix="/api/v1", tags=["cron"])
app.include_router(health.router, prefix="/api", tags=["health"])


# ---------------------------
# Scheduler (recurring inspections)
# ---------------------------
@app.on_event("startup")
def _start_scheduler():
    app.state.scheduler = None
    if not config.ENABLE_SCHEDULER:
        log.info("background scheduler disabled (ENABLE_SCHEDULER=0)")
        return
    try:
        app.state.scheduler = make_scheduler()
        app.state.scheduler.start()
    except Exception:
        # API keeps running; the cron endpoint can still trigger passes
        log.exception("failed to start background scheduler")
        app.state.scheduler = None


@app.on_event("shutdown")
def _stop_scheduler():
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)


# ---------------------------
# OpenAPI (bearer login flow for Swagger "Authorize")
# ---------------------------
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title="QR Inspect",
        version=__version__,
        description="Recurring QR-code inspections: templates, scheduling, checklists and reports",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})
    openapi_schema["components"]["securitySchemes"]["OAuth2PasswordBearer"] = {
        "type": "oauth2",
        "flows": {"password": {"tokenUrl": "/api/v1/login", "scopes": {}}},
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

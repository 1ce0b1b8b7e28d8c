# qrinspect/api/health.py
import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from qrinspect import __version__
from qrinspect.core.auth import get_db
from qrinspect.core.clock import utcnow

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz() -> dict:
    # liveness: 200 as long as the process answers
    return {
        "ok": True,
        "service": "qrinspect",
        "version": __version__,
        "status": "healthy",
        "ts": utcnow().isoformat() + "Z",
    }


@router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    t0 = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - t0) * 1000.0
        return JSONResponse(
            status_code=200,
            content={"ok": True, "db": "up", "db_latency_ms": round(latency_ms, 2)},
            headers={"Cache-Control": "no-store"},
        )
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "db": "down", "error": str(e)},
            headers={"Cache-Control": "no-store"},
        )

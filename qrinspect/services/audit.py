# qrinspect/services/audit.py
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from qrinspect.models.audit_log import AuditLog

log = logging.getLogger("qrinspect.audit")


# -----------------------------
# Helpers
# -----------------------------
def ip_from_request(request: Optional[Request]) -> Optional[str]:
    """
    Best-effort client IP extraction compatible with proxies.
    Order:
      - X-Forwarded-For (first in the list)
      - X-Real-IP
      - request.client.host
    """
    if request is None:
        return None
    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = getattr(request, "client", None)
    return getattr(client, "host", None)


def _default(o: Any) -> Any:
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    return str(o)


def _dumps_meta(meta: Optional[Dict[str, Any]]) -> str:
    return json.dumps(meta or {}, ensure_ascii=False, separators=(",", ":"), default=_default)


# -----------------------------
# Core API
# -----------------------------
def audit_log(
    db: Session,
    *,
    organization_id: Optional[int],
    user_id: Optional[int],
    action: str,
    entity_type: Optional[str],
    entity_id: Optional[int],
    meta: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
) -> None:
    """
    Adds an audit row to the current transaction (caller commits).
    Audit must never break the business operation: failures are logged and
    the row is dropped.
    """
    try:
        db.add(
            AuditLog(
                organization_id=organization_id,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                meta=_dumps_meta(meta),
                ip_address=ip,
            )
        )
    except Exception:
        log.exception("audit_log failed action=%s entity=%s:%s", action, entity_type, entity_id)


def audit_commit(
    db: Session,
    request: Optional[Request],
    user,
    *,
    action: str,
    entity_type: Optional[str],
    entity_id: Optional[int],
    organization_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> None:
    """Best-effort audit in its own commit, used by routes after the business write."""
    try:
        audit_log(
            db,
            organization_id=organization_id if organization_id is not None else getattr(user, "organization_id", None),
            user_id=getattr(user, "id", None),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta,
            ip=ip_from_request(request),
        )
        db.commit()
    except Exception:
        db.rollback()
        log.exception("audit commit failed action=%s", action)

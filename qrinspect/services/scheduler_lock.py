# qrinspect/services/scheduler_lock.py
"""
Advisory lease stored in the database.

Background passes can be fired by APScheduler inside every API worker and by
the external cron endpoint at the same time; the lease makes sure only one of
them works on the data at any moment. A crashed holder is taken over once its
lease expires.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qrinspect.core.clock import as_naive_utc, utcnow
from qrinspect.models.scheduler_lock import SchedulerLock

log = logging.getLogger("qrinspect.scheduler")


def acquire_lock(
    db: Session,
    name: str,
    *,
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Return a holder token if the lease was taken, None if someone else holds it."""
    now = as_naive_utc(now) if now else utcnow()
    token = uuid.uuid4().hex
    expires_at = now + timedelta(seconds=ttl_seconds)

    # 1) take over an expired lease (single conditional UPDATE → atomic)
    taken = (
        db.query(SchedulerLock)
        .filter(SchedulerLock.name == name, SchedulerLock.expires_at <= now)
        .update(
            {"holder": token, "acquired_at": now, "expires_at": expires_at},
            synchronize_session=False,
        )
    )
    if taken:
        db.commit()
        log.info("lock %s taken over (expired lease) holder=%s", name, token)
        return token

    # 2) first use → insert; PK conflict means a live holder exists
    db.add(SchedulerLock(name=name, holder=token, acquired_at=now, expires_at=expires_at))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        holder = db.get(SchedulerLock, name)
        log.warning(
            "lock %s busy holder=%s until=%s",
            name,
            getattr(holder, "holder", None),
            getattr(holder, "expires_at", None),
        )
        return None
    return token


def release_lock(db: Session, name: str, token: str) -> bool:
    """Drop the lease if we still hold it. Returns False if it was lost meanwhile."""
    deleted = (
        db.query(SchedulerLock)
        .filter(SchedulerLock.name == name, SchedulerLock.holder == token)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        log.warning("lock %s was no longer held by %s on release", name, token)
    return bool(deleted)

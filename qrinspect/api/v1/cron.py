# qrinspect/api/v1/cron.py
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from qrinspect.core import config
from qrinspect.core.auth import get_optional_user, get_session_factory
from qrinspect.core.rbac import is_super_admin
from qrinspect.models.user import User
from qrinspect.schemas.inspection import SchedulingPassOut
from qrinspect.services.inspection_scheduler import run_scheduling_pass

router = APIRouter()
log = logging.getLogger("qrinspect.cron")


def _secret_ok(provided: Optional[str]) -> bool:
    expected = config.CRON_SECRET
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


@router.post("/cron/create-inspections", response_model=SchedulingPassOut)
def trigger_scheduling_pass(
    x_cron_secret: Optional[str] = Header(None, alias="X-Cron-Secret"),
    current_user: Optional[User] = Depends(get_optional_user),
    session_factory=Depends(get_session_factory),
):
    """
    Run one scheduling pass now. Callable by an external cron with the shared
    secret, or by a Super Admin. Concurrent calls are serialized by the pass lock;
    the loser returns ``lock_acquired=false``.
    """
    if not _secret_ok(x_cron_secret) and not (current_user and is_super_admin(current_user)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    trigger = "secret" if current_user is None else f"user:{current_user.id}"
    log.info("scheduling pass triggered over HTTP (%s)", trigger)
    return run_scheduling_pass(session_factory)

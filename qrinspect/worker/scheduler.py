# qrinspect/worker/scheduler.py
from __future__ import annotations

import logging

from tzlocal import get_localzone
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from qrinspect.core import config
from qrinspect.services.inspection_scheduler import run_scheduling_pass

log = logging.getLogger("qrinspect.worker")

JOB_ID = "create_inspections"


def run_scheduled_pass() -> dict:
    """Job entry point; a crashing pass must not kill the scheduler thread."""
    try:
        return run_scheduling_pass()
    except Exception:
        log.exception("scheduled inspection pass failed")
        return {"lock_acquired": False, "errors": 1}


def _timezone_name() -> str:
    if config.APP_TIMEZONE:
        return config.APP_TIMEZONE
    try:
        return str(get_localzone())
    except Exception:
        return "UTC"


def make_scheduler() -> BackgroundScheduler:
    """
    Create a BackgroundScheduler configured from env:
      - APP_TIMEZONE                    (default: system tz via tzlocal, else 'UTC')
      - APP_SCHEDULER_HOUR / _MINUTE    (default: daily at 06:00)
      - APP_SCHEDULER_INTERVAL_MINUTES  (if > 0, run every N minutes instead)
    """
    tzname = _timezone_name()
    sched = BackgroundScheduler(timezone=tzname)

    if config.APP_SCHEDULER_INTERVAL_MINUTES > 0:
        trigger = IntervalTrigger(minutes=config.APP_SCHEDULER_INTERVAL_MINUTES)
    else:
        trigger = CronTrigger(hour=config.APP_SCHEDULER_HOUR, minute=config.APP_SCHEDULER_MINUTE)

    sched.add_job(
        run_scheduled_pass,
        trigger,
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info("inspection scheduler configured: tz=%s trigger=%s", tzname, trigger)
    return sched

from datetime import timedelta
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import get_settings
from ..core.clock import Clock, SystemClock
from ..db.session import SessionLocal
from ..services import reservation_service

logger = logging.getLogger(__name__)


def complete_finished(clock: Clock | None = None) -> int:
    with SessionLocal() as db:
        completed = reservation_service.complete_elapsed_reservations(db, clock or SystemClock())
    if completed:
        logger.info("Completed elapsed reservations", extra={"count": completed})
    return completed


def release_unpaid(clock: Clock | None = None) -> int:
    timeout = timedelta(minutes=get_settings().pending_hold_timeout_min)
    with SessionLocal() as db:
        expired = reservation_service.expire_pending_reservations(db, clock or SystemClock(), timeout)
    if expired:
        logger.info("Released unpaid reservations", extra={"count": expired})
    return expired


def get_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(complete_finished, "interval", minutes=5)
    scheduler.add_job(release_unpaid, "interval", minutes=1)
    return scheduler

from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger
from sqlmodel import Session

from app.core.config import settings
from app.db.core import engine
from app.services.link import LinkService


def reconcile_job() -> int:
    """Daily downgrade of links whose inherited base evidence expired."""
    with Session(engine) as session:
        result = LinkService(session).reconcile_expirations()
    logger.info(f"Scheduled reconcile: {len(result.expired_link_ids)} link(s) expired")
    return len(result.expired_link_ids)


class ReconcileScheduler:
    """Owns the background APScheduler running expiry reconciliation."""

    def __init__(self, hour_utc: Optional[int] = None):
        self.hour_utc = settings.reconcile_hour_utc if hour_utc is None else hour_utc
        self._scheduler = BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        self._scheduler.add_job(
            reconcile_job,
            trigger=CronTrigger(hour=self.hour_utc, minute=0, timezone="UTC"),
            id="reconcile_expirations",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Expiry reconciliation scheduled daily at {self.hour_utc:02d}:00 UTC")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

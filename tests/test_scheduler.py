"""Background expiry reconciliation."""
from datetime import datetime

from app.core import scheduler as scheduler_module
from app.core.scheduler import ReconcileScheduler, reconcile_job
from app.services.link import LinkService

from tests.conftest import ACTOR


def test_reconcile_job_uses_its_own_session(
    monkeypatch, engine, session, make_fabric, make_style, record_test
) -> None:
    tested_at = datetime(2024, 1, 10, 9, 0, 0)
    fabric, donor_style, style = make_fabric(), make_style(), make_style()
    links = LinkService(session)
    links.link(donor_style.id, fabric.id, ACTOR, now=tested_at)
    record_test(fabric.id, donor_style.id, tested_at)
    links.link(style.id, fabric.id, ACTOR, now=tested_at)

    monkeypatch.setattr(scheduler_module, "engine", engine)

    assert reconcile_job() == 1
    assert reconcile_job() == 0


def test_scheduler_registers_daily_job() -> None:
    scheduler = ReconcileScheduler(hour_utc=3)
    scheduler.start()
    try:
        assert scheduler.running
        job = scheduler._scheduler.get_job("reconcile_expirations")
        assert job is not None
        assert "hour='3'" in str(job.trigger)
    finally:
        scheduler.shutdown()

"""Background scheduler for the periodic expiry sweep."""

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from envshare.config import settings
from envshare.database import SessionLocal
from envshare.errors import StorageError
from envshare.services.vault_engine import VaultEngine
from envshare.services.vault_store import SqlAlchemyVaultStore

logger = structlog.get_logger()

_scheduler: BackgroundScheduler | None = None


def sweep_job() -> None:
    """Delete secrets whose expiry has passed, read or not."""
    db = SessionLocal()
    try:
        VaultEngine(SqlAlchemyVaultStore(db)).sweep()
    except StorageError:
        logger.error("scheduled_sweep_failed")
    finally:
        db.close()


def start_scheduler() -> None:
    global _scheduler

    _scheduler = BackgroundScheduler()
    _scheduler.add_job(
        sweep_job,
        trigger=IntervalTrigger(minutes=settings.sweep_interval_minutes),
        id="sweep_expired_secrets",
        replace_existing=True,
    )
    _scheduler.start()
    logger.info("scheduler_started", interval_minutes=settings.sweep_interval_minutes)


def shutdown_scheduler() -> None:
    global _scheduler

    if _scheduler is None:
        return
    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("scheduler_stopped")

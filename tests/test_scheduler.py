"""Tests for the periodic expiry sweep job."""

import time
from unittest.mock import patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from envshare import scheduler
from envshare.models.secret import Secret


def add_secret(db_session, expires_at: int) -> None:
    db_session.add(
        Secret(ciphertext="Y2lwaGVy", nonce="AAAAAAAAAAAAAAAA", reads_left=1, expires_at=expires_at)
    )
    db_session.commit()


class NonClosingSession:
    """Hands the test session to sweep_job without letting it close it."""

    def __init__(self, session):
        self._session = session

    def __call__(self):
        return self

    def __getattr__(self, name):
        return getattr(self._session, name)

    def close(self):
        pass


def test_sweep_job_deletes_expired(db_session):
    now = int(time.time())
    add_secret(db_session, now - 60)
    add_secret(db_session, now + 3600)

    with patch.object(scheduler, "SessionLocal", NonClosingSession(db_session)):
        scheduler.sweep_job()

    remaining = db_session.execute(select(func.count()).select_from(Secret)).scalar_one()
    assert remaining == 1


def test_sweep_job_survives_storage_failure(db_session):
    session = NonClosingSession(db_session)

    with patch.object(scheduler, "SessionLocal", session):
        with patch.object(
            db_session,
            "execute",
            side_effect=OperationalError("DELETE", {}, Exception("disk full")),
        ):
            scheduler.sweep_job()


def test_start_and_shutdown():
    with patch.object(scheduler, "BackgroundScheduler") as scheduler_cls:
        scheduler.start_scheduler()
        instance = scheduler_cls.return_value
        instance.add_job.assert_called_once()
        assert instance.add_job.call_args.kwargs["id"] == "sweep_expired_secrets"
        instance.start.assert_called_once()

        scheduler.shutdown_scheduler()
        instance.shutdown.assert_called_once_with(wait=False)

    # Second shutdown is a no-op
    scheduler.shutdown_scheduler()

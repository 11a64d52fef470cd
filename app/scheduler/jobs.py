"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for the daily metrics snapshot.

Organization discovery
----------------------
Organizations are resolved at job runtime: every row of ``organizations``
with ``is_active = true`` gets a snapshot.

Schedule (all times UTC)
------------------------
  daily_metrics: 01:00 every day (DAILY_METRICS_HOUR / DAILY_METRICS_MINUTE)

Each run computes yesterday's snapshot (closing the day that just ended)
and today's running snapshot. Re-running overwrites both rows in place.

Lifecycle
---------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.daily_metrics_service import DailyMetricsService, get_daily_metrics_service
from db.session import SessionLocal

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------


@contextmanager
def _session_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Job: Daily metrics snapshot
# ---------------------------------------------------------------------------


def run_daily_metrics(
    *,
    session_factory: Callable[[], Session] = SessionLocal,
    service: DailyMetricsService | None = None,
    today: date | None = None,
) -> int:
    """
    Compute and store yesterday's and today's snapshot for every active
    organization. The service commits per snapshot; a failing organization
    is rolled back and skipped.

    Returns the number of snapshots stored.
    """
    logger.info("Scheduler: daily_metrics starting")
    service = service or get_daily_metrics_service()
    today = today or datetime.now(tz=timezone.utc).date()
    days = (today - timedelta(days=1), today)
    stored = 0

    with _session_scope(session_factory) as db:
        organization_ids = service.list_active_organizations(db=db)
        if not organization_ids:
            logger.warning("Scheduler: daily_metrics found no active organizations, skipping")
            return 0

        for organization_id in organization_ids:
            try:
                for day in days:
                    service.compute_and_store(db=db, organization_id=organization_id, day=day)
                    stored += 1
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                logger.warning(
                    "Scheduler: daily_metrics failed organization=%s: %s",
                    organization_id,
                    exc,
                )

    logger.info("Scheduler: daily_metrics complete snapshots=%d", stored)
    return stored


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_daily_metrics,
        trigger="cron",
        hour=settings.daily_metrics_hour,
        minute=settings.daily_metrics_minute,
        id="daily_metrics",
        name="Daily metrics snapshot",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    return scheduler

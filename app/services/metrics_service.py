"""
app/services/metrics_service.py

Read-side metrics service: current snapshot, history and MRR waterfall.

Wires SnapshotRepository / EventRepository reads into the pure functions of
``analytics.metrics`` and ``analytics.waterfall``. Nothing is written and
nothing is cached between requests; store failures surface as
``UpstreamError`` and abort the whole request.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timezone
from functools import lru_cache

from sqlalchemy.orm import Session

from analytics.metrics import (
    build_history,
    compare_snapshots,
    comparison_cutoff,
    history_window,
    validate_days,
)
from analytics.types import MetricsSnapshot, RevenueWaterfall, SnapshotComparison
from analytics.waterfall import build_waterfall, month_bounds
from app.config import AnalyticsSettings, get_analytics_settings
from db.repositories.event_repository import EventRepository
from db.repositories.snapshot_repository import SnapshotRepository

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(tz=timezone.utc).date()


class MetricsService:
    """
    Stateless service; repositories are built per call from the request session.
    """

    def __init__(
        self,
        settings: AnalyticsSettings,
        *,
        snapshot_repository_factory: Callable[[Session], SnapshotRepository] = SnapshotRepository,
        event_repository_factory: Callable[[Session], EventRepository] = EventRepository,
    ) -> None:
        self._settings = settings
        self._snapshots = snapshot_repository_factory
        self._events = event_repository_factory

    def current_snapshot(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
    ) -> SnapshotComparison | None:
        """
        Latest snapshot with its comparison baseline, or ``None`` when the
        organization has no snapshots yet.
        """
        snapshots = self._snapshots(db)
        current = snapshots.latest_snapshot(organization_id)
        if current is None:
            logger.info("No metrics snapshot yet organization=%s", organization_id)
            return None

        previous = snapshots.latest_snapshot(
            organization_id,
            on_or_before=comparison_cutoff(current, self._settings.snapshot_comparison_days),
        )
        return compare_snapshots(current, previous)

    def history(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        days: int,
        today: date | None = None,
    ) -> list[MetricsSnapshot]:
        """
        Snapshots of the last ``days`` calendar days, oldest first. Missing
        days stay missing.
        """
        days = validate_days(days)
        today = today or _utc_today()
        start, end = history_window(today, days)
        rows = self._snapshots(db).list_snapshots(organization_id, start, end)
        history = build_history(rows, days=days, today=today)
        logger.info(
            "Metrics history organization=%s days=%d entries=%d",
            organization_id,
            days,
            len(history),
        )
        return history

    def waterfall(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        now: datetime | None = None,
    ) -> RevenueWaterfall:
        """
        Month-to-date MRR movement between the previous month's closing
        snapshot and the latest snapshot.
        """
        now = now or datetime.now(tz=timezone.utc)
        today = now.date()
        month_start, previous_month_end = month_bounds(today)

        snapshots = self._snapshots(db)
        opening = snapshots.latest_snapshot(organization_id, on_or_before=previous_month_end)
        closing = snapshots.latest_snapshot(organization_id, on_or_before=today)
        events = self._events(db).list_events(
            organization_id,
            occurred_after=datetime.combine(month_start, time.min, tzinfo=timezone.utc),
            occurred_before=now,
        )
        return build_waterfall(
            starting_mrr=opening.mrr if opening is not None else 0,
            ending_mrr=closing.mrr if closing is not None else 0,
            events=events,
        )


@lru_cache(maxsize=1)
def get_metrics_service() -> MetricsService:
    """
    Build and cache the metrics service.
    """

    return MetricsService(get_analytics_settings())

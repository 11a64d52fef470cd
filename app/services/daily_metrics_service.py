"""
app/services/daily_metrics_service.py

Computes and persists one daily metrics snapshot per organization and day.

Data flow
---------
1. BillingRepository / SnapshotRepository gather the billing facts for the day.
2. ``analytics.daily.compute_daily_metrics`` applies the formulas.
3. SnapshotRepository upserts the row keyed by (organization_id, date).

Re-running the computation for the same day overwrites the row in place.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from analytics.daily import DailyMetricsInput, compute_daily_metrics
from analytics.errors import UpstreamError
from analytics.types import EventType, MetricsSnapshot
from analytics.waterfall import month_bounds
from db.repositories.billing_repository import BillingRepository
from db.repositories.errors import upstream_errors
from db.repositories.snapshot_repository import SnapshotRepository

logger = logging.getLogger(__name__)


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class DailyMetricsService:
    """
    Orchestrates gathering, computing and storing one snapshot.
    """

    def __init__(
        self,
        *,
        billing_repository_factory: Callable[[Session], BillingRepository] = BillingRepository,
        snapshot_repository_factory: Callable[[Session], SnapshotRepository] = SnapshotRepository,
    ) -> None:
        self._billing = billing_repository_factory
        self._snapshots = snapshot_repository_factory

    def gather_inputs(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        day: date,
    ) -> DailyMetricsInput:
        billing = self._billing(db)
        snapshots = self._snapshots(db)

        day_start = _start_of(day)
        day_end = day_start + timedelta(days=1)
        month_start, previous_month_end = month_bounds(day)
        month_start_at = _start_of(month_start)

        baseline = snapshots.latest_snapshot(organization_id, on_or_before=previous_month_end)

        return DailyMetricsInput(
            target_date=day,
            active_subscriptions=billing.active_subscriptions(organization_id, day_end),
            new_subscriptions=billing.count_created_subscriptions(
                organization_id, day_start, day_end
            ),
            canceled_subscriptions=len(
                billing.canceled_subscription_mrrs(organization_id, day_start, day_end)
            ),
            upgrades=billing.count_events(organization_id, EventType.UPGRADE, day_start, day_end),
            downgrades=billing.count_events(
                organization_id, EventType.DOWNGRADE, day_start, day_end
            ),
            previous_active_subscriptions=billing.count_active_subscriptions(
                organization_id, month_start_at
            ),
            canceled_this_month=billing.canceled_subscription_mrrs(
                organization_id,
                month_start_at,
                _start_of(month_start + relativedelta(months=1)),
            ),
            previous_mrr=baseline.mrr if baseline is not None else 0,
            payments=billing.payments_between(organization_id, day_start, day_end),
        )

    def compute_and_store(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        day: date,
    ) -> MetricsSnapshot:
        """
        Compute the snapshot for ``day`` and commit it.

        The session is rolled back when the store rejects the write or the
        commit; both surface as ``UpstreamError``.
        """
        inputs = self.gather_inputs(db=db, organization_id=organization_id, day=day)
        snapshot = compute_daily_metrics(inputs)

        try:
            self._snapshots(db).upsert_snapshot(organization_id, snapshot)
            with upstream_errors("commit daily metrics"):
                db.commit()
        except UpstreamError:
            db.rollback()
            raise

        logger.info(
            "Stored daily metrics organization=%s date=%s mrr=%d active=%d",
            organization_id,
            day.isoformat(),
            snapshot.mrr,
            snapshot.active_subscriptions,
        )
        return snapshot

    def list_active_organizations(self, *, db: Session) -> list[uuid.UUID]:
        return self._billing(db).list_active_organization_ids()


@lru_cache(maxsize=1)
def get_daily_metrics_service() -> DailyMetricsService:
    """
    Build and cache the daily metrics service.
    """

    return DailyMetricsService()

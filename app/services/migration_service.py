"""
app/services/migration_service.py

Plan migration analysis over a trailing window of months.

Loads the window's subscription events plus the full event history of every
customer seen in the window, then hands both to ``analytics.migration``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache

from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError
from analytics.migration import analyze_migrations, months_before
from analytics.types import MIGRATION_EVENT_TYPES, PlanMigrationAnalysis
from app.config import AnalyticsSettings, get_analytics_settings
from db.repositories.event_repository import EventRepository

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MONTHS = 12
MAX_ANALYSIS_MONTHS = 120


def validate_months(months: object, *, maximum: int = MAX_ANALYSIS_MONTHS) -> int:
    """Reject non-integer, non-positive or oversized window lengths."""
    if isinstance(months, bool) or not isinstance(months, int) or months <= 0:
        raise InvalidArgumentError(f"months must be a positive integer, got {months!r}")
    if months > maximum:
        raise InvalidArgumentError(f"months must be at most {maximum}, got {months!r}")
    return months


class MigrationAnalysisService:
    """
    Stateless service; repositories are built per call from the request session.
    """

    def __init__(
        self,
        settings: AnalyticsSettings,
        *,
        event_repository_factory: Callable[[Session], EventRepository] = EventRepository,
    ) -> None:
        self._settings = settings
        self._events = event_repository_factory

    def analyze(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        months: int = DEFAULT_ANALYSIS_MONTHS,
        include_new_signups: bool = True,
        now: datetime | None = None,
    ) -> PlanMigrationAnalysis:
        months = validate_months(months)
        now = now or datetime.now(tz=timezone.utc)
        window_start = months_before(now, months)

        repository = self._events(db)
        events = repository.list_events(
            organization_id,
            types=MIGRATION_EVENT_TYPES,
            occurred_after=window_start,
            occurred_before=now,
        )
        customer_ids = {event.customer_id for event in events}
        history = (
            repository.list_customer_events(organization_id, customer_ids, occurred_before=now)
            if customer_ids
            else []
        )

        analysis = analyze_migrations(
            events,
            history,
            include_new_signups=include_new_signups,
            thresholds=self._settings.thresholds,
        )
        logger.info(
            "Migration analysis organization=%s months=%d events=%d paths=%d friction=%d",
            organization_id,
            months,
            len(events),
            len(analysis.paths),
            len(analysis.friction_points),
        )
        return analysis


@lru_cache(maxsize=1)
def get_migration_analysis_service() -> MigrationAnalysisService:
    """
    Build and cache the migration analysis service.
    """

    return MigrationAnalysisService(get_analytics_settings())

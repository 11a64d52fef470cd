"""
app/services/retention_service.py

Churn-risk and cohort-retention reads for one organization.

Wires RetentionRepository reads into ``analytics.retention``. Nothing is
written; store failures surface as ``UpstreamError``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError
from analytics.retention import (
    DEFAULT_AT_RISK_LIMIT,
    FAILED_PAYMENT_LOOKBACK_DAYS,
    build_cohort_retention,
    cohort_window_start,
    rank_at_risk_customers,
)
from analytics.types import AtRiskCustomer, CohortRetention
from db.repositories.retention_repository import RetentionRepository

logger = logging.getLogger(__name__)

MAX_AT_RISK_LIMIT = 100
DEFAULT_COHORT_MONTHS = 12
MAX_COHORT_MONTHS = 120


def _validate_bounded(value: object, *, name: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")
    if value > maximum:
        raise InvalidArgumentError(f"{name} must be at most {maximum}, got {value!r}")
    return value


class RetentionService:
    """
    Stateless service; the repository is built per call from the request session.
    """

    def __init__(
        self,
        *,
        repository_factory: Callable[[Session], RetentionRepository] = RetentionRepository,
    ) -> None:
        self._repository = repository_factory

    def at_risk_customers(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        limit: int = DEFAULT_AT_RISK_LIMIT,
        now: datetime | None = None,
    ) -> list[AtRiskCustomer]:
        limit = _validate_bounded(limit, name="limit", maximum=MAX_AT_RISK_LIMIT)
        now = now or datetime.now(tz=timezone.utc)

        repository = self._repository(db)
        customers = rank_at_risk_customers(
            canceling=repository.canceling_subscriptions(organization_id),
            delinquent=repository.delinquent_customers(organization_id),
            failed_payments=repository.failed_payments_since(
                organization_id, now - timedelta(days=FAILED_PAYMENT_LOOKBACK_DAYS)
            ),
            now=now,
            limit=limit,
        )
        logger.info(
            "At-risk customers organization=%s flagged=%d", organization_id, len(customers)
        )
        return customers

    def cohort_retention(
        self,
        *,
        db: Session,
        organization_id: uuid.UUID,
        months: int = DEFAULT_COHORT_MONTHS,
        now: datetime | None = None,
    ) -> list[CohortRetention]:
        """Signup cohorts of the last ``months`` calendar months, oldest first."""
        months = _validate_bounded(months, name="months", maximum=MAX_COHORT_MONTHS)
        now = now or datetime.now(tz=timezone.utc)

        subscriptions = self._repository(db).subscriptions_created_since(
            organization_id, cohort_window_start(now, months)
        )
        cohorts = build_cohort_retention(subscriptions, now=now)
        logger.info(
            "Cohort retention organization=%s months=%d cohorts=%d",
            organization_id,
            months,
            len(cohorts),
        )
        return cohorts


@lru_cache(maxsize=1)
def get_retention_service() -> RetentionService:
    """
    Build and cache the retention service.
    """

    return RetentionService()

"""
analytics/types.py

Typed records consumed and produced by the analytics core.

Inputs (``BillingEvent``, ``MetricsSnapshot``) are built by the repository
layer from ORM rows; outputs (``MigrationPath``, ``PlanFunnelStat``,
``FrictionPoint``, ``PlanMigrationAnalysis``, ...) are transient and are
recomputed for every request.

All money values are integer minor-currency units (cents).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

NEW_PLAN_SENTINEL = "NEW"
UNKNOWN_PLAN = "Unknown"


class EventType(str, Enum):
    """Billing-state transition recorded for a subscription."""

    NEW = "NEW"
    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"
    CANCELED = "CANCELED"


MIGRATION_EVENT_TYPES: frozenset[EventType] = frozenset(
    {EventType.NEW, EventType.UPGRADE, EventType.DOWNGRADE}
)
"""Event types that take part in plan-migration analysis."""


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskReason(str, Enum):
    """Why a paying customer is flagged as likely to churn."""

    PAST_DUE = "past_due"
    FAILED_PAYMENT = "failed_payment"
    DOWNGRADE_INTENT = "downgrade_intent"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BillingEvent:
    """
    Immutable subscription event as read from the event store.

    ``customer_id`` is the customer owning ``subscription_id``; it is the key
    used to relate transitions, lead times and churns of one customer.
    """

    id: uuid.UUID
    organization_id: uuid.UUID
    subscription_id: uuid.UUID
    customer_id: uuid.UUID
    event_type: EventType
    occurred_at: datetime
    previous_plan_id: str | None = None
    previous_plan_nickname: str | None = None
    new_plan_id: str | None = None
    new_plan_nickname: str | None = None
    previous_mrr: int = 0
    new_mrr: int = 0
    previous_quantity: int | None = None
    new_quantity: int | None = None

    @property
    def mrr_delta(self) -> int:
        return self.new_mrr - self.previous_mrr

    @property
    def from_plan(self) -> str | None:
        """Display name of the plan left behind, ``None`` for new signups."""
        return self.previous_plan_nickname or self.previous_plan_id or None

    @property
    def to_plan(self) -> str:
        """Display name of the plan moved to."""
        return self.new_plan_nickname or self.new_plan_id or UNKNOWN_PLAN


@dataclass(frozen=True)
class MetricsSnapshot:
    """One organization's aggregates for one calendar day."""

    date: date
    mrr: int = 0
    arr: int = 0
    arpu: int = 0
    active_subscriptions: int = 0
    new_subscriptions: int = 0
    canceled_subscriptions: int = 0
    upgrades: int = 0
    downgrades: int = 0
    gross_churn_rate: float = 0.0
    revenue_churn_rate: float = 0.0
    net_revenue_retention: float = 100.0
    successful_payments: int = 0
    failed_payments: int = 0
    failed_payment_rate: float = 0.0
    total_payment_volume: int = 0
    average_discount: float = 0.0
    effective_price: int = 0
    discount_leakage: int = 0
    plan_distribution: dict[str, float] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SnapshotComparison:
    """Latest snapshot with its comparison baseline."""

    current: MetricsSnapshot
    previous_period: MetricsSnapshot | None
    changes: dict[str, float]


@dataclass(frozen=True)
class MigrationPath:
    from_plan: str | None
    to_plan: str
    count: int
    total_mrr_delta: int
    avg_mrr_delta: int
    conversion_rate: float | None = None
    avg_days_to_migrate: float | None = None


@dataclass(frozen=True)
class PlanFunnelStat:
    plan: str
    total_customers: int
    upgrade_count: int
    downgrade_count: int
    churn_count: int
    upgrade_rate: float
    downgrade_rate: float
    churn_rate: float


@dataclass(frozen=True)
class FrictionPoint:
    from_plan: str
    to_plan: str
    issue: str
    severity: Severity


@dataclass(frozen=True)
class FrictionReport:
    insights: list[str]
    friction_points: list[FrictionPoint]


@dataclass(frozen=True)
class PlanMigrationAnalysis:
    paths: list[MigrationPath]
    funnel: list[PlanFunnelStat]
    insights: list[str]
    friction_points: list[FrictionPoint]


@dataclass(frozen=True)
class RevenueWaterfall:
    starting_mrr: int
    new_business: int
    expansion: int
    contraction: int
    churn: int
    ending_mrr: int


@dataclass(frozen=True)
class AtRiskCustomer:
    customer_id: uuid.UUID
    email: str
    mrr: int
    risk_reason: RiskReason
    risk_score: int
    days_since_issue: int


@dataclass(frozen=True)
class CohortRetention:
    """
    Retention of one signup-month cohort.

    ``months[m]`` is the percentage of the cohort still subscribed at the end
    of month ``m`` (``months[0]`` is always 100), or ``None`` while month
    ``m`` has not finished.
    """

    cohort: str
    cohort_start: date
    start_count: int
    months: list[int | None]

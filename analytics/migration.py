"""
analytics/migration.py

Plan-migration path analysis.

Groups NEW / UPGRADE / DOWNGRADE events into ``from -> to`` transition
buckets and derives per-plan funnel statistics in a single pass.

Inputs
------
events:
    Qualifying events inside the analysis window, oldest first.
history:
    Every known event (any type) of the customers appearing in ``events``,
    up to the end of the window. Used for lead-time lookups, which may reach
    back before the window, and for churn attribution. When omitted,
    ``events`` doubles as the history.

Path semantics
--------------
* key = (previous plan display name or ``None`` for signups, new plan display name)
* ``avg_mrr_delta`` = round(total / count), half-up
* ``conversion_rate`` = count / times the source plan was left * 100,
  ``None`` for signup paths
* ``avg_days_to_migrate`` = mean lead time over UPGRADE / DOWNGRADE
  occurrences that have a matching prior event; ``None`` when there are none

Paths are ordered by count descending; ties keep discovery order.
All accumulators are local to one call.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Hashable

from dateutil.relativedelta import relativedelta

from analytics.friction import detect_friction
from analytics.formatting import round_half_up
from analytics.thresholds import DEFAULT_THRESHOLDS, AnalysisThresholds
from analytics.types import (
    MIGRATION_EVENT_TYPES,
    BillingEvent,
    EventType,
    MigrationPath,
    PlanFunnelStat,
    PlanMigrationAnalysis,
)

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------


@dataclass
class _PathAccumulator:
    count: int = 0
    total_mrr_delta: int = 0
    lead_times: list[int] = field(default_factory=list)


@dataclass
class _PlanCounters:
    total: int = 0
    upgrades: int = 0
    downgrades: int = 0
    churns: int = 0


@dataclass(frozen=True)
class MigrationAggregate:
    """Paths and funnel produced by one aggregation pass."""

    paths: list[MigrationPath]
    funnel: list[PlanFunnelStat]


# ---------------------------------------------------------------------------
# Customer history index
# ---------------------------------------------------------------------------


class CustomerHistoryIndex:
    """
    Per-customer, time-ordered view of billing events.

    Replaces one backward query per transition with an in-memory search.
    """

    def __init__(self, events: Iterable[BillingEvent]) -> None:
        by_customer: dict[Hashable, list[BillingEvent]] = {}
        for event in events:
            by_customer.setdefault(event.customer_id, []).append(event)

        self._events: dict[Hashable, list[BillingEvent]] = {}
        self._cancellations: dict[Hashable, list[datetime]] = {}
        for customer_id, customer_events in by_customer.items():
            ordered = sorted(customer_events, key=lambda e: e.occurred_at)
            self._events[customer_id] = ordered
            self._cancellations[customer_id] = [
                e.occurred_at for e in ordered if e.event_type is EventType.CANCELED
            ]

    def lead_time_days(self, event: BillingEvent) -> int | None:
        """
        Whole days since the customer most recently entered ``event``'s
        previous plan, or ``None`` when no such prior event is known.
        """
        for prior in reversed(self._events.get(event.customer_id, ())):
            if prior.id == event.id or prior.occurred_at > event.occurred_at:
                continue
            if _enters_previous_plan(prior, event):
                elapsed = (event.occurred_at - prior.occurred_at).total_seconds()
                return int(elapsed // _SECONDS_PER_DAY)
        return None

    def churned_within(self, event: BillingEvent, days: int) -> bool:
        """True when the customer canceled within ``days`` after ``event``."""
        cancellations = self._cancellations.get(event.customer_id)
        if not cancellations:
            return False
        deadline = event.occurred_at + timedelta(days=days)
        position = bisect.bisect_left(cancellations, event.occurred_at)
        return position < len(cancellations) and cancellations[position] <= deadline


def _enters_previous_plan(prior: BillingEvent, event: BillingEvent) -> bool:
    if prior.new_plan_id is not None and prior.new_plan_id == event.previous_plan_id:
        return True
    return (
        prior.new_plan_nickname is not None
        and prior.new_plan_nickname == event.previous_plan_nickname
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def aggregate_migrations(
    events: Sequence[BillingEvent],
    history: Sequence[BillingEvent] | None = None,
    *,
    include_new_signups: bool = True,
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
) -> MigrationAggregate:
    """
    Fold window events into migration paths and plan funnel statistics.

    Signup paths are always folded; ``include_new_signups`` only controls
    whether they are returned.
    """
    qualifying = sorted(
        (e for e in events if e.event_type in MIGRATION_EVENT_TYPES),
        key=lambda e: e.occurred_at,
    )
    index = CustomerHistoryIndex(history if history is not None else events)

    paths: dict[tuple[str | None, str], _PathAccumulator] = {}
    plans: dict[str, _PlanCounters] = {}

    for event in qualifying:
        from_plan = event.from_plan
        key = (from_plan, event.to_plan)
        path = paths.setdefault(key, _PathAccumulator())
        path.count += 1
        path.total_mrr_delta += event.mrr_delta

        if event.event_type in (EventType.UPGRADE, EventType.DOWNGRADE):
            lead_time = index.lead_time_days(event)
            if lead_time is not None:
                path.lead_times.append(lead_time)

        if from_plan is None:
            continue

        counters = plans.setdefault(from_plan, _PlanCounters())
        counters.total += 1
        if event.event_type is EventType.UPGRADE:
            counters.upgrades += 1
        elif event.event_type is EventType.DOWNGRADE:
            counters.downgrades += 1
        if index.churned_within(event, thresholds.churn_attribution_days):
            counters.churns += 1

    migration_paths = [
        _build_path(from_plan, to_plan, acc, plans)
        for (from_plan, to_plan), acc in paths.items()
        if include_new_signups or from_plan is not None
    ]
    migration_paths.sort(key=lambda p: p.count, reverse=True)

    funnel = [_build_funnel_stat(plan, counters) for plan, counters in plans.items()]
    funnel.sort(key=lambda s: s.total_customers, reverse=True)

    logger.debug(
        "Migration aggregation: %d events -> %d paths, %d funnel plans",
        len(qualifying),
        len(migration_paths),
        len(funnel),
    )
    return MigrationAggregate(paths=migration_paths, funnel=funnel)


def analyze_migrations(
    events: Sequence[BillingEvent],
    history: Sequence[BillingEvent] | None = None,
    *,
    include_new_signups: bool = True,
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
) -> PlanMigrationAnalysis:
    """Aggregate paths and funnel, then derive insights and friction points."""
    aggregate = aggregate_migrations(
        events,
        history,
        include_new_signups=include_new_signups,
        thresholds=thresholds,
    )
    report = detect_friction(aggregate.paths, aggregate.funnel, thresholds=thresholds)
    return PlanMigrationAnalysis(
        paths=aggregate.paths,
        funnel=aggregate.funnel,
        insights=report.insights,
        friction_points=report.friction_points,
    )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _build_path(
    from_plan: str | None,
    to_plan: str,
    acc: _PathAccumulator,
    plans: dict[str, _PlanCounters],
) -> MigrationPath:
    conversion_rate: float | None = None
    if from_plan is not None:
        total_from_plan = plans[from_plan].total
        conversion_rate = (acc.count / total_from_plan) * 100

    avg_days: float | None = None
    if acc.lead_times:
        avg_days = sum(acc.lead_times) / len(acc.lead_times)

    return MigrationPath(
        from_plan=from_plan,
        to_plan=to_plan,
        count=acc.count,
        total_mrr_delta=acc.total_mrr_delta,
        avg_mrr_delta=round_half_up(acc.total_mrr_delta / acc.count),
        conversion_rate=conversion_rate,
        avg_days_to_migrate=avg_days,
    )


def _build_funnel_stat(plan: str, counters: _PlanCounters) -> PlanFunnelStat:
    # A plan is only registered once it has been left, so total is never zero.
    total = counters.total
    return PlanFunnelStat(
        plan=plan,
        total_customers=total,
        upgrade_count=counters.upgrades,
        downgrade_count=counters.downgrades,
        churn_count=counters.churns,
        upgrade_rate=(counters.upgrades / total) * 100,
        downgrade_rate=(counters.downgrades / total) * 100,
        churn_rate=(counters.churns / total) * 100,
    )


def months_before(moment: datetime, months: int) -> datetime:
    """
    Same wall-clock moment ``months`` calendar months earlier, clamping the
    day to the target month's length (Mar 31 - 1 month = Feb 28/29).
    """
    return moment - relativedelta(months=months)

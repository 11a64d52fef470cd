"""
analytics/friction.py

Deterministic, rule-based insight and friction detection over migration paths.

Insights (informational, in this order, each at most once)
-----------------------------------------------------------
1. Top upgrade    – highest-count path leaving a plan with positive avg MRR delta.
2. Top downgrade  – highest-count path leaving a plan with negative avg MRR delta.
3. High churn     – first funnel plan whose churn rate exceeds the threshold.

Friction rules (independent, applied to every path leaving a plan)
------------------------------------------------------------------
Low conversion  – count > min and conversion rate < 5 %.
                  Severity: high < 2 %, medium < 3 %, else low.
Slow migration  – count > min and average lead time > 180 days.
                  Severity: high > 365 days, else medium.

A single path may raise both friction points.
"""

from __future__ import annotations

from collections.abc import Sequence

from analytics import formatting
from analytics.thresholds import DEFAULT_THRESHOLDS, AnalysisThresholds
from analytics.types import (
    FrictionPoint,
    FrictionReport,
    MigrationPath,
    PlanFunnelStat,
    Severity,
)


def detect_friction(
    paths: Sequence[MigrationPath],
    funnel: Sequence[PlanFunnelStat],
    *,
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
) -> FrictionReport:
    """
    Build insight sentences and friction points.

    ``paths`` must already be ordered by count descending; the first match
    in that order wins for the top-upgrade and top-downgrade insights.
    """
    return FrictionReport(
        insights=_insights(paths, funnel, thresholds),
        friction_points=_friction_points(paths, thresholds),
    )


def _insights(
    paths: Sequence[MigrationPath],
    funnel: Sequence[PlanFunnelStat],
    thresholds: AnalysisThresholds,
) -> list[str]:
    plan_changes = [p for p in paths if p.from_plan is not None]
    top_upgrade = _highest_count(p for p in plan_changes if p.avg_mrr_delta > 0)
    top_downgrade = _highest_count(p for p in plan_changes if p.avg_mrr_delta < 0)
    high_churn = next(
        (s for s in funnel if s.churn_rate > thresholds.high_churn_insight_rate),
        None,
    )

    insights: list[str] = []
    if top_upgrade is not None:
        insights.append(formatting.top_upgrade_sentence(top_upgrade))
    if top_downgrade is not None:
        insights.append(formatting.top_downgrade_sentence(top_downgrade))
    if high_churn is not None:
        insights.append(formatting.high_churn_sentence(high_churn))
    return insights


def _highest_count(candidates) -> MigrationPath | None:
    best: MigrationPath | None = None
    for path in candidates:
        if best is None or path.count > best.count:
            best = path
    return best


def _friction_points(
    paths: Sequence[MigrationPath],
    thresholds: AnalysisThresholds,
) -> list[FrictionPoint]:
    low_conversion: list[FrictionPoint] = []
    slow_migration: list[FrictionPoint] = []

    for path in paths:
        if path.from_plan is None:
            continue

        rate = path.conversion_rate
        if (
            rate is not None
            and path.count > thresholds.low_conversion_min_count
            and rate < thresholds.low_conversion_rate
        ):
            low_conversion.append(
                FrictionPoint(
                    from_plan=path.from_plan,
                    to_plan=path.to_plan,
                    issue=formatting.low_conversion_issue(path, rate),
                    severity=_low_conversion_severity(rate, thresholds),
                )
            )

        days = path.avg_days_to_migrate
        if (
            days is not None
            and path.count > thresholds.slow_migration_min_count
            and days > thresholds.slow_migration_days
        ):
            slow_migration.append(
                FrictionPoint(
                    from_plan=path.from_plan,
                    to_plan=path.to_plan,
                    issue=formatting.slow_migration_issue(path, days),
                    severity=(
                        Severity.HIGH
                        if days > thresholds.slow_migration_high_days
                        else Severity.MEDIUM
                    ),
                )
            )

    return low_conversion + slow_migration


def _low_conversion_severity(rate: float, thresholds: AnalysisThresholds) -> Severity:
    if rate < thresholds.low_conversion_high_rate:
        return Severity.HIGH
    if rate < thresholds.low_conversion_medium_rate:
        return Severity.MEDIUM
    return Severity.LOW

"""
analytics/formatting.py

Narrative templates for insights and friction points.

Pure interpolation and rounding only. Thresholds that decide *whether* a
sentence is produced live in ``analytics.friction``.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from analytics.types import MigrationPath, PlanFunnelStat


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return math.floor(value + 0.5)


def format_money(amount_minor: int | float) -> str:
    """
    Minor currency units to a whole-unit display string (``7000`` -> ``"70"``).

    Halves round away from zero, so ``-4550`` reads ``"-46"``.
    """
    units = Decimal(str(amount_minor)) / 100
    return str(units.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def top_upgrade_sentence(path: MigrationPath) -> str:
    return (
        f"Most common upgrade: {path.from_plan} → {path.to_plan} "
        f"({path.count} customers, +{format_money(path.avg_mrr_delta)}/mo avg)"
    )


def top_downgrade_sentence(path: MigrationPath) -> str:
    return (
        f"Most common downgrade: {path.from_plan} → {path.to_plan} "
        f"({path.count} customers, {format_money(path.avg_mrr_delta)}/mo avg)"
    )


def high_churn_sentence(stat: PlanFunnelStat) -> str:
    return f"High churn risk: {stat.plan} has {stat.churn_rate:.1f}% churn rate"


def low_conversion_issue(path: MigrationPath, conversion_rate: float) -> str:
    return (
        f"Only {conversion_rate:.1f}% of {path.from_plan} customers "
        f"upgrade to {path.to_plan}"
    )


def slow_migration_issue(path: MigrationPath, avg_days: float) -> str:
    months = round_half_up(avg_days / 30)
    return (
        f"Takes {months} months on average to migrate from "
        f"{path.from_plan or 'signup'} to {path.to_plan}"
    )

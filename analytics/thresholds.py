"""
analytics/thresholds.py

Named business thresholds for migration, funnel and friction analysis.

The defaults reproduce the values the dashboard has always used. Deployments
override them through ``app.config.get_analytics_settings``.
"""

from __future__ import annotations

from dataclasses import dataclass

CHURN_ATTRIBUTION_DAYS = 90
LOW_CONVERSION_MIN_COUNT = 3
LOW_CONVERSION_RATE = 5.0
LOW_CONVERSION_HIGH_RATE = 2.0
LOW_CONVERSION_MEDIUM_RATE = 3.0
SLOW_MIGRATION_MIN_COUNT = 5
SLOW_MIGRATION_DAYS = 180.0
SLOW_MIGRATION_HIGH_DAYS = 365.0
HIGH_CHURN_INSIGHT_RATE = 20.0


@dataclass(frozen=True)
class AnalysisThresholds:
    """
    Thresholds applied by the migration analyzer and friction detector.

    Count guards are strict: a rule applies only when ``count`` is greater
    than the configured minimum.
    """

    churn_attribution_days: int = CHURN_ATTRIBUTION_DAYS
    low_conversion_min_count: int = LOW_CONVERSION_MIN_COUNT
    low_conversion_rate: float = LOW_CONVERSION_RATE
    low_conversion_high_rate: float = LOW_CONVERSION_HIGH_RATE
    low_conversion_medium_rate: float = LOW_CONVERSION_MEDIUM_RATE
    slow_migration_min_count: int = SLOW_MIGRATION_MIN_COUNT
    slow_migration_days: float = SLOW_MIGRATION_DAYS
    slow_migration_high_days: float = SLOW_MIGRATION_HIGH_DAYS
    high_churn_insight_rate: float = HIGH_CHURN_INSIGHT_RATE


DEFAULT_THRESHOLDS = AnalysisThresholds()

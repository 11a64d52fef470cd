"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from analytics import thresholds as defaults
from analytics.metrics import SNAPSHOT_COMPARISON_DAYS
from analytics.thresholds import AnalysisThresholds
from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class AnalyticsSettings:
    """
    Business thresholds for migration analysis plus the snapshot comparison window.
    """

    thresholds: AnalysisThresholds = field(default_factory=AnalysisThresholds)
    snapshot_comparison_days: int = SNAPSHOT_COMPARISON_DAYS


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Daily snapshot job settings (UTC).
    """

    enabled: bool = True
    daily_metrics_hour: int = 1
    daily_metrics_minute: int = 0


@lru_cache(maxsize=1)
def get_analytics_settings() -> AnalyticsSettings:
    """
    Return cached analytics settings, overridable per threshold via env vars.
    """

    thresholds = AnalysisThresholds(
        churn_attribution_days=_get_int_env(
            "CHURN_ATTRIBUTION_DAYS", defaults.CHURN_ATTRIBUTION_DAYS
        ),
        low_conversion_min_count=_get_int_env(
            "LOW_CONVERSION_MIN_COUNT", defaults.LOW_CONVERSION_MIN_COUNT
        ),
        low_conversion_rate=_get_float_env(
            "LOW_CONVERSION_RATE", defaults.LOW_CONVERSION_RATE
        ),
        low_conversion_high_rate=_get_float_env(
            "LOW_CONVERSION_HIGH_RATE", defaults.LOW_CONVERSION_HIGH_RATE
        ),
        low_conversion_medium_rate=_get_float_env(
            "LOW_CONVERSION_MEDIUM_RATE", defaults.LOW_CONVERSION_MEDIUM_RATE
        ),
        slow_migration_min_count=_get_int_env(
            "SLOW_MIGRATION_MIN_COUNT", defaults.SLOW_MIGRATION_MIN_COUNT
        ),
        slow_migration_days=_get_float_env(
            "SLOW_MIGRATION_DAYS", defaults.SLOW_MIGRATION_DAYS
        ),
        slow_migration_high_days=_get_float_env(
            "SLOW_MIGRATION_HIGH_DAYS", defaults.SLOW_MIGRATION_HIGH_DAYS
        ),
        high_churn_insight_rate=_get_float_env(
            "HIGH_CHURN_INSIGHT_RATE", defaults.HIGH_CHURN_INSIGHT_RATE
        ),
    )
    return AnalyticsSettings(
        thresholds=thresholds,
        snapshot_comparison_days=_get_int_env(
            "SNAPSHOT_COMPARISON_DAYS", SNAPSHOT_COMPARISON_DAYS
        ),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        daily_metrics_hour=_get_int_env("DAILY_METRICS_HOUR", 1),
        daily_metrics_minute=_get_int_env("DAILY_METRICS_MINUTE", 0),
    )

"""
analytics/metrics.py

Metrics Aggregator: reduces stored daily snapshots into the current view
and the historical trend.

Pure functions only; the caller fetches snapshot rows through the snapshot
reader and passes them in. Missing calendar days are never synthesized.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from analytics.errors import InvalidArgumentError
from analytics.types import MetricsSnapshot, SnapshotComparison

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 30
MAX_HISTORY_DAYS = 3650
SNAPSHOT_COMPARISON_DAYS = 30


def validate_days(days: int) -> int:
    """
    Return ``days`` unchanged, or raise when it is not an integer in
    ``1..MAX_HISTORY_DAYS``.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise InvalidArgumentError(f"days must be a positive integer, got {days!r}.")
    if days > MAX_HISTORY_DAYS:
        raise InvalidArgumentError(f"days must be at most {MAX_HISTORY_DAYS}, got {days!r}.")
    return days


def history_window(today: date, days: int) -> tuple[date, date]:
    """
    Inclusive ``(start, end)`` date range covering at most ``days`` calendar days
    ending on ``today``.
    """
    validate_days(days)
    return today - timedelta(days=days - 1), today


def build_history(
    snapshots: Iterable[MetricsSnapshot],
    *,
    days: int,
    today: date,
) -> list[MetricsSnapshot]:
    """
    Ordered history, oldest first, with at most one entry per date.

    Snapshots outside the window are dropped. When two rows share a date
    the first one seen is kept.
    """
    start, end = history_window(today, days)
    by_date: dict[date, MetricsSnapshot] = {}
    for snapshot in snapshots:
        if start <= snapshot.date <= end and snapshot.date not in by_date:
            by_date[snapshot.date] = snapshot
    return [by_date[d] for d in sorted(by_date)]


def comparison_cutoff(current: MetricsSnapshot, comparison_days: int) -> date:
    """Latest date a snapshot may carry to serve as ``current``'s baseline."""
    return current.date - timedelta(days=comparison_days)


def compare_snapshots(
    current: MetricsSnapshot,
    previous: MetricsSnapshot | None,
) -> SnapshotComparison:
    """
    Attach period-over-period changes to ``current``.

    ``mrr``, ``active_subscriptions`` and ``arpu`` are percentage changes
    (0 when the baseline is 0); ``gross_churn_rate`` is the difference in
    percentage points. ``changes`` is empty without a baseline.
    """
    changes: dict[str, float] = {}
    if previous is not None:
        changes["mrr"] = _percent_change(current.mrr, previous.mrr)
        changes["active_subscriptions"] = _percent_change(
            current.active_subscriptions, previous.active_subscriptions
        )
        changes["gross_churn_rate"] = current.gross_churn_rate - previous.gross_churn_rate
        changes["arpu"] = _percent_change(current.arpu, previous.arpu)
    return SnapshotComparison(current=current, previous_period=previous, changes=changes)


def _percent_change(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return ((current - previous) / previous) * 100

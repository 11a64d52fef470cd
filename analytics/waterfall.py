"""
analytics/waterfall.py

Month-to-date MRR movement ("waterfall") from subscription events.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from analytics.types import BillingEvent, EventType, RevenueWaterfall


def month_bounds(today: date) -> tuple[date, date]:
    """``(first day of today's month, last day of the previous month)``."""
    month_start = today.replace(day=1)
    return month_start, month_start - timedelta(days=1)


def build_waterfall(
    *,
    starting_mrr: int,
    ending_mrr: int,
    events: Iterable[BillingEvent],
) -> RevenueWaterfall:
    """
    Split month-to-date events into new business, expansion, contraction
    and churn. Contraction and churn are reported as positive amounts.
    """
    totals = {event_type: 0 for event_type in EventType}
    for event in events:
        totals[event.event_type] += event.mrr_delta

    return RevenueWaterfall(
        starting_mrr=starting_mrr,
        new_business=totals[EventType.NEW],
        expansion=totals[EventType.UPGRADE],
        contraction=abs(totals[EventType.DOWNGRADE]),
        churn=abs(totals[EventType.CANCELED]),
        ending_mrr=ending_mrr,
    )

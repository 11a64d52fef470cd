"""
Shared fixtures: billing-event and snapshot builders.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable

import pytest

from analytics.types import BillingEvent, EventType, MetricsSnapshot

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
ORG_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")


def _plan_id(name: str | None) -> str | None:
    return f"price_{name.lower()}" if name else None


@pytest.fixture()
def make_event() -> Callable[..., BillingEvent]:
    """
    Build a BillingEvent ``day`` days after T0.

    Plan names are used both as nickname and (lower-cased) as price id.
    """

    def _make(
        customer: str,
        event_type: EventType,
        day: float,
        *,
        from_plan: str | None = None,
        to_plan: str | None = None,
        previous_mrr: int = 0,
        new_mrr: int = 0,
    ) -> BillingEvent:
        return BillingEvent(
            id=uuid.uuid4(),
            organization_id=ORG_ID,
            subscription_id=uuid.uuid5(uuid.NAMESPACE_URL, f"sub/{customer}"),
            customer_id=uuid.uuid5(uuid.NAMESPACE_URL, f"cus/{customer}"),
            event_type=event_type,
            occurred_at=T0 + timedelta(days=day),
            previous_plan_id=_plan_id(from_plan),
            previous_plan_nickname=from_plan,
            new_plan_id=_plan_id(to_plan),
            new_plan_nickname=to_plan,
            previous_mrr=previous_mrr,
            new_mrr=new_mrr,
        )

    return _make


@pytest.fixture()
def make_snapshot() -> Callable[..., MetricsSnapshot]:
    def _make(day: date, **values) -> MetricsSnapshot:
        return MetricsSnapshot(date=day, **values)

    return _make

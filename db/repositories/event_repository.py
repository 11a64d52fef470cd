"""
db/repositories/event_repository.py

Organization-scoped, read-only access to subscription events.

Rows are returned as ``analytics.types.BillingEvent`` records ordered by
``occurred_at`` ascending, with the owning customer resolved through the
event's subscription.
"""

from __future__ import annotations

import uuid
from collections.abc import Collection, Iterable
from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from analytics.types import BillingEvent, EventType
from db.models.billing_subscription import BillingSubscription
from db.models.subscription_event import SubscriptionEvent
from db.repositories.errors import upstream_errors


class EventRepository:
    """
    Reader for ``subscription_events``. Never writes.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_events(
        self,
        organization_id: uuid.UUID,
        *,
        types: Iterable[EventType] | None = None,
        occurred_after: datetime | None = None,
        occurred_before: datetime | None = None,
    ) -> list[BillingEvent]:
        """
        Return the organization's events, optionally filtered by type and by
        an inclusive ``[occurred_after, occurred_before]`` range.
        """
        stmt = self._base_query(organization_id)
        if types is not None:
            stmt = stmt.where(SubscriptionEvent.type.in_(list(types)))
        if occurred_after is not None:
            stmt = stmt.where(SubscriptionEvent.occurred_at >= occurred_after)
        if occurred_before is not None:
            stmt = stmt.where(SubscriptionEvent.occurred_at <= occurred_before)

        with upstream_errors("list subscription events"):
            rows = self._session.execute(stmt).all()
        return [_to_record(event, customer_id) for event, customer_id in rows]

    def list_customer_events(
        self,
        organization_id: uuid.UUID,
        customer_ids: Collection[uuid.UUID],
        *,
        occurred_before: datetime | None = None,
    ) -> list[BillingEvent]:
        """
        Return every event (any type) of the given customers up to
        ``occurred_before`` inclusive.
        """
        if not customer_ids:
            return []

        stmt = self._base_query(organization_id).where(
            BillingSubscription.customer_id.in_(list(customer_ids))
        )
        if occurred_before is not None:
            stmt = stmt.where(SubscriptionEvent.occurred_at <= occurred_before)

        with upstream_errors("list customer event history"):
            rows = self._session.execute(stmt).all()
        return [_to_record(event, customer_id) for event, customer_id in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _base_query(organization_id: uuid.UUID) -> Select:
        return (
            select(SubscriptionEvent, BillingSubscription.customer_id)
            .join(
                BillingSubscription,
                BillingSubscription.id == SubscriptionEvent.subscription_id,
            )
            .where(
                SubscriptionEvent.organization_id == organization_id,
                BillingSubscription.organization_id == organization_id,
            )
            .order_by(SubscriptionEvent.occurred_at, SubscriptionEvent.id)
        )


def _to_record(event: SubscriptionEvent, customer_id: uuid.UUID) -> BillingEvent:
    return BillingEvent(
        id=event.id,
        organization_id=event.organization_id,
        subscription_id=event.subscription_id,
        customer_id=customer_id,
        event_type=EventType(event.type),
        occurred_at=event.occurred_at,
        previous_plan_id=event.previous_plan_id,
        previous_plan_nickname=event.previous_plan_nickname,
        new_plan_id=event.new_plan_id,
        new_plan_nickname=event.new_plan_nickname,
        previous_mrr=event.previous_mrr,
        new_mrr=event.new_mrr,
        previous_quantity=event.previous_quantity,
        new_quantity=event.new_quantity,
    )

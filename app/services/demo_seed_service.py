"""
app/services/demo_seed_service.py

Fabricates a self-consistent demo dataset for one organization.

Existing billing rows and snapshots of the organization are deleted first.
Customers sign up on Starter / Growth / Scale and may later upgrade,
downgrade or cancel; subscriptions reflect each customer's final state.
A few paying customers are delinquent after a failed payment or have
scheduled a cancellation at period end. Sixty days of daily snapshots with
gentle MRR growth are added on top.

The same ``seed`` (and ``now``) always produces the same dataset.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError, UpstreamError
from analytics.types import EventType, MetricsSnapshot
from db.models.billing_customer import BillingCustomer
from db.models.billing_payment import BillingPayment
from db.models.billing_subscription import BillingSubscription
from db.models.organization import Organization
from db.models.subscription_event import SubscriptionEvent
from db.repositories.snapshot_repository import SnapshotRepository

logger = logging.getLogger(__name__)

DEMO_CUSTOMER_COUNT = 40
DEMO_SNAPSHOT_DAYS = 60

# (plan id, nickname, monthly amount in minor units)
DEMO_PLANS: tuple[tuple[str, str, int], ...] = (
    ("price_demo_1", "Starter", 2900),
    ("price_demo_2", "Growth", 9900),
    ("price_demo_3", "Scale", 19900),
)
_PLAN_WEIGHTS = (0.55, 0.32, 0.13)
_PLAN_DISTRIBUTION = {"Starter": 0.55, "Growth": 0.32, "Scale": 0.13}


@dataclass(frozen=True)
class DemoSeedSummary:
    customers: int
    subscriptions: int
    events: int
    payments: int
    snapshots: int


def seed_demo_data(
    session: Session,
    organization_id: uuid.UUID,
    *,
    months: int = 12,
    seed: int | None = None,
    now: datetime | None = None,
) -> DemoSeedSummary:
    """
    Replace the organization's billing data with a generated demo dataset
    and commit.

    Raises:
        InvalidArgumentError: if ``months`` is not positive.
        UpstreamError: if the store rejects a write; the session is rolled back.
    """
    if months <= 0:
        raise InvalidArgumentError(f"months must be a positive integer, got {months!r}")

    rng = random.Random(seed)
    now = now or datetime.now(tz=timezone.utc)

    try:
        _ensure_organization(session, organization_id)
        _wipe_organization(session, organization_id)
        counts = _seed_billing(session, organization_id, rng, now=now, months=months)
        snapshots = _seed_snapshots(session, organization_id, rng, now=now)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Demo seed failed organization=%s: %s", organization_id, exc)
        raise UpstreamError("Failed to seed demo data") from exc
    except UpstreamError:
        session.rollback()
        raise

    summary = DemoSeedSummary(snapshots=snapshots, **counts)
    logger.info("Seeded demo data organization=%s %s", organization_id, summary)
    return summary


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _ensure_organization(session: Session, organization_id: uuid.UUID) -> None:
    if session.get(Organization, organization_id) is None:
        session.add(Organization(id=organization_id, name="Demo Organization", is_active=True))
        session.flush()


def _wipe_organization(session: Session, organization_id: uuid.UUID) -> None:
    # Children before parents.
    for model in (SubscriptionEvent, BillingPayment, BillingSubscription, BillingCustomer):
        session.execute(delete(model).where(model.organization_id == organization_id))
    SnapshotRepository(session).delete_for_organization(organization_id)


def _seed_billing(
    session: Session,
    organization_id: uuid.UUID,
    rng: random.Random,
    *,
    now: datetime,
    months: int,
) -> dict[str, int]:
    horizon_days = months * 30
    events = 0
    payments = 0

    for number in range(1, DEMO_CUSTOMER_COUNT + 1):
        signup = now - timedelta(days=rng.randint(1, horizon_days), hours=rng.randint(0, 23))
        plan_index = rng.choices(range(len(DEMO_PLANS)), weights=_PLAN_WEIGHTS)[0]

        customer = BillingCustomer(
            id=uuid.uuid4(),
            organization_id=organization_id,
            stripe_id=f"cus_demo_{number}",
            email=f"customer{number}@example.com",
            delinquent=False,
            stripe_created_at=signup,
        )
        subscription = BillingSubscription(
            id=uuid.uuid4(),
            organization_id=organization_id,
            customer_id=customer.id,
            stripe_id=f"sub_demo_{number}",
            status="active",
            plan_interval="month",
            quantity=1,
            start_date=signup,
            stripe_created_at=signup,
        )
        session.add_all([customer, subscription])
        session.flush()

        timeline = _customer_timeline(rng, signup, plan_index, now=now)
        for event in timeline:
            session.add(
                SubscriptionEvent(
                    id=uuid.uuid4(),
                    organization_id=organization_id,
                    subscription_id=subscription.id,
                    **event,
                )
            )
        events += len(timeline)

        last = timeline[-1]
        if last["type"] is EventType.CANCELED:
            subscription.status = "canceled"
            subscription.canceled_at = last["occurred_at"]
            subscription.ended_at = last["occurred_at"]
            plan_id, nickname = last["previous_plan_id"], last["previous_plan_nickname"]
            amount = last["previous_mrr"]
        else:
            plan_id, nickname = last["new_plan_id"], last["new_plan_nickname"]
            amount = last["new_mrr"]
            paid_at = now - timedelta(days=rng.randint(0, 29), hours=rng.randint(0, 23))
            status = "failed" if rng.random() < 0.05 else "succeeded"
            customer.delinquent = status == "failed"
            subscription.current_period_end = now + timedelta(days=rng.randint(1, 29))
            subscription.cancel_at_period_end = rng.random() < 0.08
            session.add(
                BillingPayment(
                    id=uuid.uuid4(),
                    organization_id=organization_id,
                    customer_id=customer.id,
                    stripe_id=f"pay_demo_{number}",
                    status=status,
                    amount=amount,
                    stripe_created_at=paid_at,
                )
            )
            payments += 1

        subscription.plan_id = plan_id
        subscription.plan_nickname = nickname
        subscription.plan_amount = _plan_amount(nickname)
        subscription.mrr = amount

    session.flush()
    return {
        "customers": DEMO_CUSTOMER_COUNT,
        "subscriptions": DEMO_CUSTOMER_COUNT,
        "events": events,
        "payments": payments,
    }


def _customer_timeline(
    rng: random.Random,
    signup: datetime,
    plan_index: int,
    *,
    now: datetime,
) -> list[dict]:
    amount = DEMO_PLANS[plan_index][2]
    timeline = [
        _event(EventType.NEW, signup, None, DEMO_PLANS[plan_index], previous_mrr=0)
    ]

    cursor = signup
    for _ in range(3):
        cursor = cursor + timedelta(days=rng.randint(20, 240))
        if cursor >= now:
            break

        roll = rng.random()
        if roll < 0.35 and plan_index < len(DEMO_PLANS) - 1:
            target = plan_index + 1
            event_type = EventType.UPGRADE
        elif roll < 0.5 and plan_index > 0:
            target = plan_index - 1
            event_type = EventType.DOWNGRADE
        elif roll < 0.65:
            timeline.append(
                _event(EventType.CANCELED, cursor, DEMO_PLANS[plan_index], None, previous_mrr=amount)
            )
            break
        else:
            continue

        timeline.append(
            _event(event_type, cursor, DEMO_PLANS[plan_index], DEMO_PLANS[target], previous_mrr=amount)
        )
        plan_index = target
        amount = DEMO_PLANS[plan_index][2]

    return timeline


def _event(
    event_type: EventType,
    occurred_at: datetime,
    previous: tuple[str, str, int] | None,
    new: tuple[str, str, int] | None,
    *,
    previous_mrr: int,
) -> dict:
    return {
        "type": event_type,
        "occurred_at": occurred_at,
        "previous_plan_id": previous[0] if previous else None,
        "previous_plan_nickname": previous[1] if previous else None,
        "new_plan_id": new[0] if new else None,
        "new_plan_nickname": new[1] if new else None,
        "previous_mrr": previous_mrr,
        "new_mrr": new[2] if new else 0,
        "previous_quantity": 1 if previous else None,
        "new_quantity": 1 if new else None,
    }


def _plan_amount(nickname: str | None) -> int:
    for _, name, amount in DEMO_PLANS:
        if name == nickname:
            return amount
    return 0


def _seed_snapshots(
    session: Session,
    organization_id: uuid.UUID,
    rng: random.Random,
    *,
    now: datetime,
) -> int:
    repository = SnapshotRepository(session)
    base_mrr = 82000
    today = now.date()

    for offset in range(DEMO_SNAPSHOT_DAYS - 1, -1, -1):
        elapsed = DEMO_SNAPSHOT_DAYS - 1 - offset
        mrr = base_mrr + elapsed * 35
        active = 420 + elapsed // 3
        churn_rate = 3.1 + rng.random() * 0.5
        repository.upsert_snapshot(
            organization_id,
            MetricsSnapshot(
                date=today - timedelta(days=offset),
                mrr=mrr,
                arr=mrr * 12,
                arpu=round(mrr / active),
                active_subscriptions=active,
                new_subscriptions=6 + rng.randint(0, 2),
                canceled_subscriptions=3 + rng.randint(0, 1),
                upgrades=2 + rng.randint(0, 1),
                downgrades=1,
                gross_churn_rate=churn_rate,
                revenue_churn_rate=churn_rate * 0.8,
                net_revenue_retention=112 + rng.random() * 4,
                successful_payments=40 + rng.randint(0, 9),
                failed_payments=3 + rng.randint(0, 2),
                failed_payment_rate=1.6 + rng.random() * 0.6,
                total_payment_volume=mrr + 5000,
                average_discount=12 + rng.random() * 4,
                effective_price=round((mrr / active) * 0.94),
                discount_leakage=800 + rng.randint(0, 299),
                plan_distribution=dict(_PLAN_DISTRIBUTION),
            ),
        )
    return DEMO_SNAPSHOT_DAYS

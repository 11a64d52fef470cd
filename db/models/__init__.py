"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.billing_customer import BillingCustomer
from db.models.billing_payment import BillingPayment
from db.models.billing_subscription import BillingSubscription
from db.models.daily_metrics import DailyMetrics
from db.models.organization import Organization
from db.models.subscription_event import SubscriptionEvent

__all__ = [
    "Organization",
    "BillingCustomer",
    "BillingSubscription",
    "BillingPayment",
    "SubscriptionEvent",
    "DailyMetrics",
]

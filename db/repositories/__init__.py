"""
Repository layer exports.
"""

from db.repositories.billing_repository import BillingRepository
from db.repositories.errors import upstream_errors
from db.repositories.event_repository import EventRepository
from db.repositories.retention_repository import RetentionRepository
from db.repositories.snapshot_repository import SnapshotRepository

__all__ = [
    "BillingRepository",
    "EventRepository",
    "RetentionRepository",
    "SnapshotRepository",
    "upstream_errors",
]

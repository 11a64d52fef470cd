"""
db/repositories/snapshot_repository.py

Persistence layer for DailyMetrics snapshot rows.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, fields
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from analytics.types import MetricsSnapshot
from db.models.daily_metrics import DailyMetrics
from db.repositories.errors import upstream_errors

_UPSERT_CONSTRAINT = "uq_daily_metrics_org_date"

_METRIC_COLUMNS: tuple[str, ...] = tuple(
    f.name for f in fields(MetricsSnapshot) if f.name != "date"
)


class SnapshotRepository:
    """
    Repository for reading and upserting DailyMetrics rows.

    Upsert semantics: writing a snapshot whose ``(organization_id, date)``
    already exists overwrites every metric column in place.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def latest_snapshot(
        self,
        organization_id: uuid.UUID,
        *,
        on_or_before: date | None = None,
    ) -> MetricsSnapshot | None:
        """
        Return the most recent snapshot, optionally bounded by ``on_or_before``.
        """
        stmt = (
            select(DailyMetrics)
            .where(DailyMetrics.organization_id == organization_id)
            .order_by(DailyMetrics.date.desc())
            .limit(1)
        )
        if on_or_before is not None:
            stmt = stmt.where(DailyMetrics.date <= on_or_before)

        with upstream_errors("read latest daily metrics"):
            row = self._session.scalars(stmt).first()
        return _to_snapshot(row) if row is not None else None

    def list_snapshots(
        self,
        organization_id: uuid.UUID,
        start: date,
        end: date,
    ) -> list[MetricsSnapshot]:
        """
        Return snapshots dated within the inclusive range, oldest first.
        """
        stmt = (
            select(DailyMetrics)
            .where(
                DailyMetrics.organization_id == organization_id,
                DailyMetrics.date >= start,
                DailyMetrics.date <= end,
            )
            .order_by(DailyMetrics.date)
        )
        with upstream_errors("list daily metrics"):
            rows = self._session.scalars(stmt).all()
        return [_to_snapshot(row) for row in rows]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert_snapshot(self, organization_id: uuid.UUID, snapshot: MetricsSnapshot) -> None:
        """
        Insert or overwrite the snapshot row for ``(organization_id, snapshot.date)``.
        """
        values = _to_columns(snapshot)
        stmt = (
            insert(DailyMetrics)
            .values(
                id=uuid.uuid4(),
                organization_id=organization_id,
                date=snapshot.date,
                **values,
            )
            .on_conflict_do_update(
                constraint=_UPSERT_CONSTRAINT,
                set_={**values, "created_at": datetime.now(tz=timezone.utc)},
            )
        )
        with upstream_errors("upsert daily metrics"):
            self._session.execute(stmt)

    def delete_for_organization(self, organization_id: uuid.UUID) -> int:
        stmt = delete(DailyMetrics).where(DailyMetrics.organization_id == organization_id)
        with upstream_errors("delete daily metrics"):
            result = self._session.execute(stmt)
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _to_columns(snapshot: MetricsSnapshot) -> dict[str, Any]:
    data = asdict(snapshot)
    return {name: data[name] for name in _METRIC_COLUMNS}


def _to_snapshot(row: DailyMetrics) -> MetricsSnapshot:
    values = {name: getattr(row, name) for name in _METRIC_COLUMNS}
    values["plan_distribution"] = dict(row.plan_distribution or {})
    return MetricsSnapshot(date=row.date, **values)

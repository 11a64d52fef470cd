"""
app/api/routers/metrics_router.py

Metrics snapshot / history and revenue waterfall endpoints.

Both read precomputed daily snapshots; nothing is recomputed per request.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError
from analytics.metrics import DEFAULT_HISTORY_DAYS, MAX_HISTORY_DAYS
from app.api.dependencies import parse_positive_int, require_organization
from app.schemas.analytics import (
    MetricsHistoryResponse,
    MetricsSnapshotResponse,
    RevenueWaterfallResponse,
)
from app.services.metrics_service import MetricsService, get_metrics_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metrics"])

_VIEWS = frozenset({"snapshot", "history"})


@router.get(
    "/api/metrics",
    response_model=None,
    status_code=status.HTTP_200_OK,
)
def get_metrics(
    view: str = Query(default="snapshot"),
    days: str | None = Query(default=None),
    organization_id: uuid.UUID = Depends(require_organization),
    db: Session = Depends(get_db),
    service: MetricsService = Depends(get_metrics_service),
) -> MetricsSnapshotResponse | MetricsHistoryResponse:
    """
    ``view=snapshot`` returns the latest snapshot with its 30-day comparison;
    ``view=history`` returns the last ``days`` snapshots, oldest first.

    Raises HTTP 400 for an unknown view or a ``days`` outside
    ``1..MAX_HISTORY_DAYS``.
    """
    try:
        if view not in _VIEWS:
            raise InvalidArgumentError(
                f"view must be one of {sorted(_VIEWS)}, got {view!r}"
            )
        if view == "history":
            history_days = parse_positive_int(
                days, name="days", default=DEFAULT_HISTORY_DAYS, maximum=MAX_HISTORY_DAYS
            )
            snapshots = service.history(
                db=db, organization_id=organization_id, days=history_days
            )
            return MetricsHistoryResponse.from_snapshots(snapshots)

        comparison = service.current_snapshot(db=db, organization_id=organization_id)
        return MetricsSnapshotResponse.from_comparison(comparison)
    except InvalidArgumentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Metrics request failed organization=%s", organization_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch metrics",
        ) from exc


@router.get(
    "/api/waterfall",
    response_model=RevenueWaterfallResponse,
    status_code=status.HTTP_200_OK,
)
def get_waterfall(
    organization_id: uuid.UUID = Depends(require_organization),
    db: Session = Depends(get_db),
    service: MetricsService = Depends(get_metrics_service),
) -> RevenueWaterfallResponse:
    """
    Month-to-date MRR bridge: starting MRR, new business, expansion,
    contraction, churn and ending MRR.
    """
    try:
        waterfall = service.waterfall(db=db, organization_id=organization_id)
    except Exception as exc:
        logger.exception("Waterfall request failed organization=%s", organization_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build revenue waterfall",
        ) from exc
    return RevenueWaterfallResponse.from_waterfall(waterfall)

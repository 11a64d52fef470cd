"""
app/api/routers/migration_router.py

Plan migration paths, funnel, insights and friction points.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError
from app.api.dependencies import parse_flag, parse_positive_int, require_organization
from app.schemas.analytics import PlanMigrationAnalysisResponse
from app.services.migration_service import (
    DEFAULT_ANALYSIS_MONTHS,
    MAX_ANALYSIS_MONTHS,
    MigrationAnalysisService,
    get_migration_analysis_service,
)
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["migration-paths"])


@router.get(
    "/api/migration-paths",
    response_model=PlanMigrationAnalysisResponse,
    status_code=status.HTTP_200_OK,
)
def get_migration_paths(
    months: str | None = Query(default=None),
    include_new: str | None = Query(default=None, alias="includeNew"),
    organization_id: uuid.UUID = Depends(require_organization),
    db: Session = Depends(get_db),
    service: MigrationAnalysisService = Depends(get_migration_analysis_service),
) -> PlanMigrationAnalysisResponse:
    """
    Analyze plan transitions over the trailing ``months`` calendar months.

    Only ``includeNew=false`` hides signup paths from ``paths``; the funnel and
    friction rules are unaffected.

    Raises HTTP 400 for a ``months`` outside ``1..MAX_ANALYSIS_MONTHS``.
    """
    try:
        window_months = parse_positive_int(
            months,
            name="months",
            default=DEFAULT_ANALYSIS_MONTHS,
            maximum=MAX_ANALYSIS_MONTHS,
        )
        analysis = service.analyze(
            db=db,
            organization_id=organization_id,
            months=window_months,
            include_new_signups=parse_flag(include_new),
        )
    except InvalidArgumentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Migration analysis failed organization=%s", organization_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze migration paths",
        ) from exc

    return PlanMigrationAnalysisResponse.from_analysis(analysis)

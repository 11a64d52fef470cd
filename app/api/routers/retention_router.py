"""
app/api/routers/retention_router.py

At-risk customers and signup-cohort retention.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from analytics.errors import InvalidArgumentError
from analytics.retention import DEFAULT_AT_RISK_LIMIT
from app.api.dependencies import parse_positive_int, require_organization
from app.schemas.analytics import AtRiskCustomersResponse, CohortRetentionListResponse
from app.services.retention_service import (
    DEFAULT_COHORT_MONTHS,
    MAX_AT_RISK_LIMIT,
    MAX_COHORT_MONTHS,
    RetentionService,
    get_retention_service,
)
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["retention"])


@router.get(
    "/api/at-risk-customers",
    response_model=AtRiskCustomersResponse,
    status_code=status.HTTP_200_OK,
)
def get_at_risk_customers(
    limit: str | None = Query(default=None),
    organization_id: uuid.UUID = Depends(require_organization),
    db: Session = Depends(get_db),
    service: RetentionService = Depends(get_retention_service),
) -> AtRiskCustomersResponse:
    """
    Paying customers most likely to churn, highest risk first.

    Raises HTTP 400 for a ``limit`` outside ``1..MAX_AT_RISK_LIMIT``.
    """
    try:
        max_customers = parse_positive_int(
            limit, name="limit", default=DEFAULT_AT_RISK_LIMIT, maximum=MAX_AT_RISK_LIMIT
        )
        customers = service.at_risk_customers(
            db=db, organization_id=organization_id, limit=max_customers
        )
    except InvalidArgumentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("At-risk request failed organization=%s", organization_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch at-risk customers",
        ) from exc

    return AtRiskCustomersResponse.from_customers(customers)


@router.get(
    "/api/cohort-retention",
    response_model=CohortRetentionListResponse,
    status_code=status.HTTP_200_OK,
)
def get_cohort_retention(
    months: str | None = Query(default=None),
    organization_id: uuid.UUID = Depends(require_organization),
    db: Session = Depends(get_db),
    service: RetentionService = Depends(get_retention_service),
) -> CohortRetentionListResponse:
    """
    Monthly retention of the signup cohorts of the last ``months`` months.

    Raises HTTP 400 for a ``months`` outside ``1..MAX_COHORT_MONTHS``.
    """
    try:
        window_months = parse_positive_int(
            months, name="months", default=DEFAULT_COHORT_MONTHS, maximum=MAX_COHORT_MONTHS
        )
        cohorts = service.cohort_retention(
            db=db, organization_id=organization_id, months=window_months
        )
    except InvalidArgumentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Cohort retention failed organization=%s", organization_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute cohort retention",
        ) from exc

    return CohortRetentionListResponse.from_cohorts(cohorts)

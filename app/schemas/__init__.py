"""
app/schemas package marker.
"""

from app.schemas.analytics import (
    AtRiskCustomerResponse,
    AtRiskCustomersResponse,
    CohortRetentionListResponse,
    CohortRetentionResponse,
    FrictionPointResponse,
    MetricsHistoryResponse,
    MetricsResponse,
    MetricsSnapshotResponse,
    MigrationPathResponse,
    PlanFunnelResponse,
    PlanMigrationAnalysisResponse,
    RevenueWaterfallResponse,
)

__all__ = [
    "AtRiskCustomerResponse",
    "AtRiskCustomersResponse",
    "CohortRetentionListResponse",
    "CohortRetentionResponse",
    "FrictionPointResponse",
    "MetricsHistoryResponse",
    "MetricsResponse",
    "MetricsSnapshotResponse",
    "MigrationPathResponse",
    "PlanFunnelResponse",
    "PlanMigrationAnalysisResponse",
    "RevenueWaterfallResponse",
]

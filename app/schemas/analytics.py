"""
Schemas for metrics, migration-path, waterfall and retention endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from analytics.types import (
    AtRiskCustomer,
    CohortRetention,
    MetricsSnapshot,
    PlanMigrationAnalysis,
    RevenueWaterfall,
    RiskReason,
    Severity,
    SnapshotComparison,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class MetricsResponse(CamelModel):
    date: dt.date
    mrr: int
    arr: int
    arpu: int
    active_subscriptions: int
    new_subscriptions: int
    canceled_subscriptions: int
    upgrades: int
    downgrades: int
    gross_churn_rate: float
    revenue_churn_rate: float
    net_revenue_retention: float
    successful_payments: int
    failed_payments: int
    failed_payment_rate: float
    total_payment_volume: int
    average_discount: float
    effective_price: int
    discount_leakage: int
    plan_distribution: dict[str, float] = Field(default_factory=dict)


class MetricsSnapshotResponse(CamelModel):
    has_data: bool
    current: MetricsResponse | None = None
    previous_period: MetricsResponse | None = None
    changes: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_comparison(cls, comparison: SnapshotComparison | None) -> MetricsSnapshotResponse:
        if comparison is None:
            return cls(has_data=False)
        return cls(
            has_data=True,
            current=MetricsResponse.model_validate(comparison.current),
            previous_period=(
                MetricsResponse.model_validate(comparison.previous_period)
                if comparison.previous_period is not None
                else None
            ),
            changes={to_camel(name): value for name, value in comparison.changes.items()},
        )


class MetricsHistoryResponse(CamelModel):
    history: list[MetricsResponse] = Field(default_factory=list)

    @classmethod
    def from_snapshots(cls, snapshots: list[MetricsSnapshot]) -> MetricsHistoryResponse:
        return cls(history=[MetricsResponse.model_validate(s) for s in snapshots])


# ---------------------------------------------------------------------------
# Migration paths
# ---------------------------------------------------------------------------


class MigrationPathResponse(CamelModel):
    from_plan: str | None
    to_plan: str
    count: int
    total_mrr_delta: int
    avg_mrr_delta: int
    conversion_rate: float | None = None
    avg_days_to_migrate: float | None = None


class PlanFunnelResponse(CamelModel):
    plan: str
    total_customers: int
    upgrade_count: int
    downgrade_count: int
    churn_count: int
    upgrade_rate: float
    downgrade_rate: float
    churn_rate: float


class FrictionPointResponse(CamelModel):
    from_plan: str
    to_plan: str
    issue: str
    severity: Severity


class PlanMigrationAnalysisResponse(CamelModel):
    paths: list[MigrationPathResponse] = Field(default_factory=list)
    funnel: list[PlanFunnelResponse] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    friction_points: list[FrictionPointResponse] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, analysis: PlanMigrationAnalysis) -> PlanMigrationAnalysisResponse:
        return cls(
            paths=[MigrationPathResponse.model_validate(p) for p in analysis.paths],
            funnel=[PlanFunnelResponse.model_validate(f) for f in analysis.funnel],
            insights=list(analysis.insights),
            friction_points=[
                FrictionPointResponse.model_validate(fp) for fp in analysis.friction_points
            ],
        )


# ---------------------------------------------------------------------------
# Waterfall
# ---------------------------------------------------------------------------


class RevenueWaterfallResponse(CamelModel):
    starting_mrr: int
    new_business: int
    expansion: int
    contraction: int
    churn: int
    ending_mrr: int

    @classmethod
    def from_waterfall(cls, waterfall: RevenueWaterfall) -> RevenueWaterfallResponse:
        return cls.model_validate(waterfall)


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------


class AtRiskCustomerResponse(CamelModel):
    customer_id: uuid.UUID
    email: str
    mrr: int
    risk_reason: RiskReason
    risk_score: int
    days_since_issue: int


class AtRiskCustomersResponse(CamelModel):
    customers: list[AtRiskCustomerResponse] = Field(default_factory=list)

    @classmethod
    def from_customers(cls, customers: list[AtRiskCustomer]) -> AtRiskCustomersResponse:
        return cls(customers=[AtRiskCustomerResponse.model_validate(c) for c in customers])


class CohortRetentionResponse(CamelModel):
    cohort: str
    cohort_start: dt.date
    start_count: int
    months: list[int | None]


class CohortRetentionListResponse(CamelModel):
    cohorts: list[CohortRetentionResponse] = Field(default_factory=list)

    @classmethod
    def from_cohorts(cls, cohorts: list[CohortRetention]) -> CohortRetentionListResponse:
        return cls(cohorts=[CohortRetentionResponse.model_validate(c) for c in cohorts])

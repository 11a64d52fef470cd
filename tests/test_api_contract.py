"""
tests/test_api_contract.py

HTTP contract tests for the metrics, waterfall, migration-path and retention
routers.

Services are replaced with in-memory fakes through FastAPI dependency
overrides; no database is touched.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from analytics.errors import InvalidArgumentError, UpstreamError
from analytics.metrics import compare_snapshots
from analytics.types import (
    AtRiskCustomer,
    CohortRetention,
    FrictionPoint,
    MetricsSnapshot,
    MigrationPath,
    PlanFunnelStat,
    PlanMigrationAnalysis,
    RevenueWaterfall,
    RiskReason,
    Severity,
)
from app.api.routers import metrics_router, migration_router, retention_router
from app.services.metrics_service import get_metrics_service
from app.services.migration_service import get_migration_analysis_service, validate_months
from app.services.retention_service import get_retention_service
from db.session import get_db

ORG = uuid.UUID("00000000-0000-0000-0000-0000000000cc")
HEADERS = {"X-Organization-Id": str(ORG)}
CUSTOMER = uuid.UUID("00000000-0000-0000-0000-0000000000c1")


class _FakeMetricsService:
    def __init__(self) -> None:
        self.snapshots: list[MetricsSnapshot] = []
        self.history_days: int | None = None
        self.fail = False

    def current_snapshot(self, *, db, organization_id):
        if self.fail:
            raise UpstreamError("read latest daily metrics failed")
        if not self.snapshots:
            return None
        previous = self.snapshots[0] if len(self.snapshots) > 1 else None
        return compare_snapshots(self.snapshots[-1], previous)

    def history(self, *, db, organization_id, days):
        self.history_days = days
        return list(self.snapshots)

    def waterfall(self, *, db, organization_id):
        if self.fail:
            raise UpstreamError("list subscription events failed")
        return RevenueWaterfall(
            starting_mrr=100000,
            new_business=12800,
            expansion=7000,
            contraction=10000,
            churn=9900,
            ending_mrr=99900,
        )


class _FakeMigrationService:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.fail = False

    def analyze(self, *, db, organization_id, months, include_new_signups):
        validate_months(months)
        self.calls.append(
            {"organization_id": organization_id, "months": months, "include_new": include_new_signups}
        )
        if self.fail:
            raise UpstreamError("list subscription events failed")
        return PlanMigrationAnalysis(
            paths=[
                MigrationPath(None, "Starter", 5, 14500, 2900),
                MigrationPath("Starter", "Growth", 2, 14000, 7000, 100.0, 40.0),
            ],
            funnel=[PlanFunnelStat("Starter", 2, 2, 0, 0, 100.0, 0.0, 0.0)],
            insights=["Most common upgrade: Starter → Growth (2 customers, +70/mo avg)"],
            friction_points=[
                FrictionPoint("Starter", "Growth", "Only 1.0% of Starter customers upgrade to Growth", Severity.HIGH)
            ],
        )


class _FakeRetentionService:
    def __init__(self) -> None:
        self.limits: list[int] = []
        self.months: list[int] = []
        self.fail = False

    def at_risk_customers(self, *, db, organization_id, limit):
        self.limits.append(limit)
        if self.fail:
            raise UpstreamError("list delinquent customers failed")
        return [
            AtRiskCustomer(
                customer_id=CUSTOMER,
                email="ops@example.com",
                mrr=19900,
                risk_reason=RiskReason.PAST_DUE,
                risk_score=90,
                days_since_issue=10,
            )
        ]

    def cohort_retention(self, *, db, organization_id, months):
        self.months.append(months)
        if self.fail:
            raise UpstreamError("list subscriptions for cohorts failed")
        return [CohortRetention("Aug 2026", date(2026, 8, 1), 5, [100, 60, None])]


@pytest.fixture()
def metrics_service() -> _FakeMetricsService:
    return _FakeMetricsService()


@pytest.fixture()
def migration_service() -> _FakeMigrationService:
    return _FakeMigrationService()


@pytest.fixture()
def retention_service() -> _FakeRetentionService:
    return _FakeRetentionService()


@pytest.fixture()
def client(metrics_service, migration_service, retention_service) -> TestClient:
    application = FastAPI()
    application.include_router(metrics_router)
    application.include_router(migration_router)
    application.include_router(retention_router)
    application.dependency_overrides[get_db] = lambda: None
    application.dependency_overrides[get_metrics_service] = lambda: metrics_service
    application.dependency_overrides[get_migration_analysis_service] = lambda: migration_service
    application.dependency_overrides[get_retention_service] = lambda: retention_service
    return TestClient(application)


# ---------------------------------------------------------------------------
# Organization context
# ---------------------------------------------------------------------------


class TestOrganizationContext:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/metrics",
            "/api/waterfall",
            "/api/migration-paths",
            "/api/at-risk-customers",
            "/api/cohort-retention",
        ],
    )
    def test_missing_header(self, client, path) -> None:
        response = client.get(path)
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    def test_malformed_header(self, client) -> None:
        response = client.get("/api/metrics", headers={"X-Organization-Id": "org-1"})
        assert response.status_code == 401

    def test_auth_checked_before_parameters(self, client) -> None:
        response = client.get("/api/metrics?view=bogus")
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# /api/metrics
# ---------------------------------------------------------------------------


class TestMetricsEndpoint:
    def test_empty_state(self, client) -> None:
        response = client.get("/api/metrics", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "hasData": False,
            "current": None,
            "previousPeriod": None,
            "changes": {},
        }

    def test_snapshot_is_camel_case(self, client, metrics_service) -> None:
        metrics_service.snapshots = [
            MetricsSnapshot(date=date(2026, 9, 18), mrr=10000, active_subscriptions=100, arpu=100),
            MetricsSnapshot(
                date=date(2026, 10, 18),
                mrr=11000,
                active_subscriptions=110,
                arpu=100,
                plan_distribution={"Starter": 1.0},
            ),
        ]

        body = client.get("/api/metrics?view=snapshot", headers=HEADERS).json()

        assert body["hasData"] is True
        assert body["current"]["date"] == "2026-10-18"
        assert body["current"]["activeSubscriptions"] == 110
        assert body["current"]["planDistribution"] == {"Starter": 1.0}
        assert body["previousPeriod"]["mrr"] == 10000
        assert body["changes"]["mrr"] == pytest.approx(10.0)
        assert body["changes"]["activeSubscriptions"] == pytest.approx(10.0)
        assert body["changes"]["grossChurnRate"] == 0.0

    def test_history(self, client, metrics_service) -> None:
        metrics_service.snapshots = [
            MetricsSnapshot(date=date(2026, 10, 17), mrr=1),
            MetricsSnapshot(date=date(2026, 10, 18), mrr=2),
        ]

        response = client.get("/api/metrics?view=history&days=7", headers=HEADERS)

        assert response.status_code == 200
        assert [row["mrr"] for row in response.json()["history"]] == [1, 2]
        assert metrics_service.history_days == 7

    def test_history_defaults_to_thirty_days(self, client, metrics_service) -> None:
        client.get("/api/metrics?view=history", headers=HEADERS)
        assert metrics_service.history_days == 30

    @pytest.mark.parametrize(
        "query",
        [
            "view=bogus",
            "view=history&days=0",
            "view=history&days=-3",
            "view=history&days=abc",
            "view=history&days=3651",
            "view=history&days=100000000000",
        ],
    )
    def test_invalid_parameters(self, client, query) -> None:
        response = client.get(f"/api/metrics?{query}", headers=HEADERS)
        assert response.status_code == 400

    def test_upstream_failure_is_generic(self, client, metrics_service) -> None:
        metrics_service.fail = True

        response = client.get("/api/metrics", headers=HEADERS)

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to fetch metrics"}


# ---------------------------------------------------------------------------
# /api/waterfall
# ---------------------------------------------------------------------------


class TestWaterfallEndpoint:
    def test_shape(self, client) -> None:
        body = client.get("/api/waterfall", headers=HEADERS).json()
        assert body == {
            "startingMrr": 100000,
            "newBusiness": 12800,
            "expansion": 7000,
            "contraction": 10000,
            "churn": 9900,
            "endingMrr": 99900,
        }

    def test_upstream_failure(self, client, metrics_service) -> None:
        metrics_service.fail = True
        response = client.get("/api/waterfall", headers=HEADERS)
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to build revenue waterfall"}


# ---------------------------------------------------------------------------
# /api/migration-paths
# ---------------------------------------------------------------------------


class TestMigrationPathsEndpoint:
    def test_defaults(self, client, migration_service) -> None:
        response = client.get("/api/migration-paths", headers=HEADERS)

        assert response.status_code == 200
        assert migration_service.calls == [
            {"organization_id": ORG, "months": 12, "include_new": True}
        ]
        body = response.json()
        assert set(body) == {"paths", "funnel", "insights", "frictionPoints"}
        assert body["paths"][0] == {
            "fromPlan": None,
            "toPlan": "Starter",
            "count": 5,
            "totalMrrDelta": 14500,
            "avgMrrDelta": 2900,
            "conversionRate": None,
            "avgDaysToMigrate": None,
        }
        assert body["funnel"][0]["totalCustomers"] == 2
        assert body["frictionPoints"][0]["severity"] == "high"

    def test_query_parameters(self, client, migration_service) -> None:
        client.get("/api/migration-paths?months=6&includeNew=false", headers=HEADERS)
        assert migration_service.calls[-1]["months"] == 6
        assert migration_service.calls[-1]["include_new"] is False

    @pytest.mark.parametrize("value", ["true", "maybe", "0", "no", "FALSE", ""])
    def test_only_exact_false_hides_signups(self, client, migration_service, value) -> None:
        response = client.get(f"/api/migration-paths?includeNew={value}", headers=HEADERS)

        assert response.status_code == 200
        assert migration_service.calls[-1]["include_new"] is True

    def test_largest_window_is_accepted(self, client, migration_service) -> None:
        response = client.get("/api/migration-paths?months=120", headers=HEADERS)

        assert response.status_code == 200
        assert migration_service.calls[-1]["months"] == 120

    @pytest.mark.parametrize("months", ["0", "-1", "abc", "121", "30000"])
    def test_invalid_months(self, client, months) -> None:
        response = client.get(f"/api/migration-paths?months={months}", headers=HEADERS)
        assert response.status_code == 400

    def test_upstream_failure_is_generic(self, client, migration_service) -> None:
        migration_service.fail = True

        response = client.get("/api/migration-paths", headers=HEADERS)

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to analyze migration paths"}


# ---------------------------------------------------------------------------
# /api/at-risk-customers, /api/cohort-retention
# ---------------------------------------------------------------------------


class TestRetentionEndpoints:
    def test_at_risk_shape(self, client, retention_service) -> None:
        response = client.get("/api/at-risk-customers", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "customers": [
                {
                    "customerId": str(CUSTOMER),
                    "email": "ops@example.com",
                    "mrr": 19900,
                    "riskReason": "past_due",
                    "riskScore": 90,
                    "daysSinceIssue": 10,
                }
            ]
        }
        assert retention_service.limits == [20]

    def test_at_risk_limit(self, client, retention_service) -> None:
        client.get("/api/at-risk-customers?limit=5", headers=HEADERS)
        assert retention_service.limits == [5]

    @pytest.mark.parametrize("limit", ["0", "abc", "101"])
    def test_at_risk_invalid_limit(self, client, retention_service, limit) -> None:
        response = client.get(f"/api/at-risk-customers?limit={limit}", headers=HEADERS)

        assert response.status_code == 400
        assert retention_service.limits == []

    def test_cohort_shape(self, client, retention_service) -> None:
        response = client.get("/api/cohort-retention?months=6", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "cohorts": [
                {
                    "cohort": "Aug 2026",
                    "cohortStart": "2026-08-01",
                    "startCount": 5,
                    "months": [100, 60, None],
                }
            ]
        }
        assert retention_service.months == [6]

    @pytest.mark.parametrize("months", ["0", "121", "30000"])
    def test_cohort_invalid_months(self, client, months) -> None:
        response = client.get(f"/api/cohort-retention?months={months}", headers=HEADERS)
        assert response.status_code == 400

    @pytest.mark.parametrize(
        ("path", "detail"),
        [
            ("/api/at-risk-customers", "Failed to fetch at-risk customers"),
            ("/api/cohort-retention", "Failed to compute cohort retention"),
        ],
    )
    def test_upstream_failure_is_generic(self, client, retention_service, path, detail) -> None:
        retention_service.fail = True

        response = client.get(path, headers=HEADERS)

        assert response.status_code == 500
        assert response.json() == {"detail": detail}


@pytest.mark.parametrize("months", [0, 121])
def test_validate_months_bounds(months) -> None:
    with pytest.raises(InvalidArgumentError):
        validate_months(months)

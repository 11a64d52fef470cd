"""
app/services package marker.
"""

from app.services.daily_metrics_service import DailyMetricsService, get_daily_metrics_service
from app.services.demo_seed_service import DemoSeedSummary, seed_demo_data
from app.services.metrics_service import MetricsService, get_metrics_service
from app.services.migration_service import (
    MigrationAnalysisService,
    get_migration_analysis_service,
)
from app.services.retention_service import RetentionService, get_retention_service

__all__ = [
    "DailyMetricsService",
    "get_daily_metrics_service",
    "DemoSeedSummary",
    "seed_demo_data",
    "MetricsService",
    "get_metrics_service",
    "MigrationAnalysisService",
    "get_migration_analysis_service",
    "RetentionService",
    "get_retention_service",
]

"""
app/api/routers package marker.
"""

from app.api.routers.metrics_router import router as metrics_router
from app.api.routers.migration_router import router as migration_router
from app.api.routers.retention_router import router as retention_router

__all__ = [
    "metrics_router",
    "migration_router",
    "retention_router",
]

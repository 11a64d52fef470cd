"""
analytics/errors.py

Exception taxonomy shared by the analytics core, repositories and routers.

There is no NoData error: an organization without snapshots or events
is a valid empty state, represented by ``None`` or an empty sequence.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base exception for analytics failures."""


class InvalidArgumentError(AnalyticsError, ValueError):
    """Raised when a caller-supplied parameter is malformed or out of range."""


class UnauthorizedError(AnalyticsError):
    """Raised when no authenticated organization context is available."""


class UpstreamError(AnalyticsError, RuntimeError):
    """
    Raised when the backing data store cannot be read.

    The original driver exception is always chained as ``__cause__``.
    """

"""
Repository-layer error translation.

Driver and ORM failures are re-raised as ``UpstreamError`` so callers above
the repository layer depend only on the analytics error taxonomy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from analytics.errors import UpstreamError

logger = logging.getLogger(__name__)


@contextmanager
def upstream_errors(operation: str) -> Iterator[None]:
    """
    Wrap a block of store reads or writes.

    Any ``SQLAlchemyError`` raised inside is logged and chained into an
    ``UpstreamError`` whose message names only ``operation``.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Data store failure during %s: %s", operation, exc)
        raise UpstreamError(f"Data store unavailable while attempting to {operation}.") from exc

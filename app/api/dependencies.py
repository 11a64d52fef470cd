"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import uuid

from fastapi import Header, HTTPException, status

from analytics.errors import InvalidArgumentError, UnauthorizedError

ORGANIZATION_HEADER = "X-Organization-Id"


def resolve_organization_id(raw: str | None) -> uuid.UUID:
    """
    Parse the organization context forwarded by the authentication layer.
    """

    value = (raw or "").strip()
    if not value:
        raise UnauthorizedError("Missing organization context")
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise UnauthorizedError("Malformed organization context") from exc


def require_organization(
    x_organization_id: str | None = Header(default=None, alias=ORGANIZATION_HEADER),
) -> uuid.UUID:
    """
    Resolve the caller's organization or reject the request with 401.
    """

    try:
        return resolve_organization_id(x_organization_id)
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        ) from exc


def parse_positive_int(
    raw: str | None,
    *,
    name: str,
    default: int,
    maximum: int | None = None,
) -> int:
    """
    Parse an optional query value as a strictly positive integer, no larger
    than ``maximum`` when one is given.
    """

    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {raw!r}") from exc
    if value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {raw!r}")
    if maximum is not None and value > maximum:
        raise InvalidArgumentError(f"{name} must be at most {maximum}, got {raw!r}")
    return value


def parse_flag(raw: str | None) -> bool:
    """
    Query flags are on unless the caller sends exactly ``false``.
    """

    return raw != "false"

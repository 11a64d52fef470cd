"""
db/models/organization.py

Organization model: the root tenant entity.
Every billing row, event and snapshot is owned by exactly one organization.
"""

import uuid

from sqlalchemy import Boolean, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Organization(Base, TimestampMixin):
    """
    A B2B SaaS business whose billing provider account is mirrored here.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive organizations are skipped by scheduled jobs",
    )

    __table_args__ = (Index("ix_organizations_is_active", "is_active"),)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

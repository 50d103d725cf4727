"""SQLAlchemy declarative base with common mixins."""
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, MetaData, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from uuid6 import uuid7


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests and local use)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Deterministic constraint names so migrations can drop and alter them
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    """Timezone-aware current time used for all timestamp columns."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDv7Mixin:
    """
    Mixin that adds a UUIDv7 primary key.

    UUIDv7 values are time-ordered, so ids sort in creation order.
    """

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at columns.

    Timestamps are set application-side so that every supported database
    stores the same wall-clock values.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        index=True,  # Index for "sort by recently updated" queries
    )


class VersionedMixin:
    """
    Shared columns for content that keeps an embedded version history.

    Version semantics:
    - The live columns always hold the current version.
    - `versions` holds superseded snapshots only, numbered 1..current_version-1.
    - Snapshots are never modified once appended.

    Each model declares its own `current_version` column and registers it as the
    mapper's version_id_col, so every UPDATE is guarded by the version that was read.
    """

    versions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list,
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    authors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    last_author: Mapped[str | None] = mapped_column(String(100), nullable=True)

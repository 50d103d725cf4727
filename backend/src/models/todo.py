"""Todo model - project tasks with status, priority, subtasks and Q&A."""
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UUIDv7Mixin, VersionedMixin


class TodoStatus(StrEnum):
    """Todo lifecycle state. Any state may move to any other."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TodoPriority(StrEnum):
    """Todo priority, lowest to highest."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Todo(Base, UUIDv7Mixin, TimestampMixin, VersionedMixin):
    """
    Todo model.

    title, description and status are versioned; priority, tags, due date,
    parent and Q&A are updated in place.
    """

    __tablename__ = "todos"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TodoStatus.PENDING.value, index=True,
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TodoPriority.MEDIUM.value, index=True,
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("todos.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Append-only list of {"question", "answer", "asked_at", "context"}
    questions_answers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list,
    )
    current_version: Mapped[int] = mapped_column(nullable=False, default=1)

    __mapper_args__ = {"version_id_col": current_version, "version_id_generator": False}

"""PromptTemplate model for storing prompt templates with named variables."""
from typing import Any
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UUIDv7Mixin, VersionedMixin


class PromptTemplate(Base, UUIDv7Mixin, TimestampMixin, VersionedMixin):
    """Prompt template - `{{ variable }}` content plus variable definitions."""

    __tablename__ = "prompt_templates"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_prompt_templates_project_name"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Each entry: {"name", "description", "required", "default_value"}
    variables: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list,
    )
    category: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    current_version: Mapped[int] = mapped_column(nullable=False, default=1)

    __mapper_args__ = {"version_id_col": current_version, "version_id_generator": False}

"""Skill model - reusable instructions, code templates and tool definitions."""
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin, VersionedMixin


class SkillType(StrEnum):
    """Kind of skill content."""

    INSTRUCTIONS = "instructions"
    CODE_TEMPLATE = "code_template"
    TOOL_DEFINITION = "tool_definition"


class Skill(Base, UUIDv7Mixin, TimestampMixin, VersionedMixin):
    """Skill model; name is unique per project and `content` is versioned."""

    __tablename__ = "skills"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_skills_project_name"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    current_version: Mapped[int] = mapped_column(nullable=False, default=1)

    __mapper_args__ = {"version_id_col": current_version, "version_id_generator": False}

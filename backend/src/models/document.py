"""ProjectDocument model - one document per type per project."""
from enum import StrEnum
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin, VersionedMixin


class DocumentType(StrEnum):
    """The fixed set of document slots a project can fill."""

    PLAN = "PLAN"
    TODO = "TODO"
    SCOPE = "SCOPE"
    TECHSTACK = "TECHSTACK"
    UI_UX_STANDARDS = "UI_UX_STANDARDS"
    CODING_GUIDELINES = "CODING_GUIDELINES"


class ProjectDocument(Base, UUIDv7Mixin, TimestampMixin, VersionedMixin):
    """Markdown document attached to a project; `content` is versioned."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("project_id", "type", name="uq_documents_project_type"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    current_version: Mapped[int] = mapped_column(nullable=False, default=1)

    __mapper_args__ = {"version_id_col": current_version, "version_id_generator": False}

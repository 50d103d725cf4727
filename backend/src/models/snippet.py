"""CodeSnippet model - named code fragments; `code` is versioned."""
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin, VersionedMixin


class CodeSnippet(Base, UUIDv7Mixin, TimestampMixin, VersionedMixin):
    """Code snippet model; name is unique per project, language is stored lowercase."""

    __tablename__ = "code_snippets"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_code_snippets_project_name"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    language: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_version: Mapped[int] = mapped_column(nullable=False, default=1)

    __mapper_args__ = {"version_id_col": current_version, "version_id_generator": False}

"""Project model - top-level container for all content entities."""
from typing import Any

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UUIDv7Mixin


class Project(Base, UUIDv7Mixin, TimestampMixin):
    """
    Project model - either a catalog template or a live user project.

    Child rows (documents, skills, snippets, prompts, todos) reference the project
    by id and are removed explicitly by ProjectService.delete().
    """

    __tablename__ = "projects"

    # id provided by UUIDv7Mixin
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    # "metadata" is reserved on declarative classes, so the attribute is suffixed
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict,
    )
    is_template: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True,
    )
    authors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    last_author: Mapped[str | None] = mapped_column(String(100), nullable=True)

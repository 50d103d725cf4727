"""Pydantic schemas for project document endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.document import DocumentType
from schemas.validators import validate_and_normalize_tags


class DocumentCreate(BaseModel):
    """Schema for creating a project document."""

    type: DocumentType
    title: str = Field(min_length=1, max_length=200)
    content: str
    tags: list[str] = Field(default_factory=list)
    username: str | None = Field(default=None, max_length=100)

    @field_validator("type", mode="before")
    @classmethod
    def uppercase_type(cls, v: str) -> str:
        """Accept document types case-insensitively."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class DocumentUpdate(BaseModel):
    """
    Schema for updating a project document.

    A changed `content` creates a new version; `title` and `tags` update in place.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = None
    tags: list[str] | None = None
    change_note: str | None = Field(
        default=None,
        description="Why the current version is being replaced. Stored on the superseded version.",
    )
    username: str | None = Field(default=None, max_length=100)
    expected_version: int | None = Field(
        default=None,
        description="For optimistic locking. If provided and the document's current_version "
                    "differs, returns 409 Conflict.",
    )

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)


class DocumentResponse(BaseModel):
    """Schema for project document responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    type: DocumentType
    title: str
    content: str
    tags: list[str]
    current_version: int
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime

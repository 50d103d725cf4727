"""Pydantic schemas for code snippet endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_and_normalize_tags, validate_entity_name


class SnippetCreate(BaseModel):
    """Schema for creating a code snippet."""

    name: str = Field(max_length=100)
    language: str = Field(min_length=1, max_length=50)
    code: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    username: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def check_name_format(cls, v: str) -> str:
        """Validate snippet name format."""
        return validate_entity_name(v)

    @field_validator("language")
    @classmethod
    def lowercase_language(cls, v: str) -> str:
        """Languages are stored lowercase."""
        return v.strip().lower()

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class SnippetUpdate(BaseModel):
    """Schema for updating a code snippet. The language is fixed at creation."""

    code: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    change_note: str | None = None
    username: str | None = Field(default=None, max_length=100)
    expected_version: int | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)


class SnippetResponse(BaseModel):
    """Schema for code snippet responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    language: str
    code: str
    description: str
    tags: list[str]
    current_version: int
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime

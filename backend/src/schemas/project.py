"""Pydantic schemas for project endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from schemas.document import DocumentResponse
from schemas.prompt_template import PromptTemplateResponse
from schemas.skill import SkillResponse
from schemas.snippet import SnippetResponse
from schemas.validators import validate_and_normalize_tags, validate_slug


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    slug: str = Field(max_length=100)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_template: bool = False
    username: str | None = Field(
        default=None,
        max_length=100,
        description="Author to record on the project.",
    )

    @field_validator("slug")
    @classmethod
    def check_slug_format(cls, v: str) -> str:
        """Lowercase and validate slug."""
        return validate_slug(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class ProjectUpdate(BaseModel):
    """Schema for updating a project. The slug cannot be changed."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    username: str | None = Field(default=None, max_length=100)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)


class ProjectResponse(BaseModel):
    """Schema for project responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    name: str
    description: str
    tags: list[str]
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_", "metadata"),
    )
    is_template: bool
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime


class ContentCounts(BaseModel):
    """Per-type child counts for a project."""

    documents: int = 0
    skills: int = 0
    snippets: int = 0
    prompts: int = 0


class TodoRollup(BaseModel):
    """Todo progress summary for a user project."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    completion_rate: str = Field(
        default="0%",
        description="round(100 * completed / total) formatted as 'NN%'.",
    )


class ProjectListItem(ProjectResponse):
    """Project with aggregate counts. Template projects carry no todos or document map."""

    counts: ContentCounts
    todos: TodoRollup | None = None
    documents: dict[str, bool] | None = Field(
        default=None,
        description="Presence of each document type (user projects only).",
    )


class ProjectListResponse(BaseModel):
    """Schema for paginated project list responses."""

    items: list[ProjectListItem]
    total: int  # Total count of projects matching the query (before pagination)
    offset: int
    limit: int
    has_more: bool


class ProjectContextResponse(BaseModel):
    """Project context: the project plus the requested child collections."""

    model_config = ConfigDict(from_attributes=True)

    project: ProjectResponse
    documents: list[DocumentResponse] | None = None
    skills: list[SkillResponse] | None = None
    snippets: list[SnippetResponse] | None = None
    prompts: list[PromptTemplateResponse] | None = None

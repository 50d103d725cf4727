"""Pydantic schemas for prompt template endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.validators import (
    check_duplicate_variable_names,
    validate_and_normalize_tags,
    validate_entity_name,
    validate_variable_name,
)


class TemplateVariable(BaseModel):
    """Schema for a prompt template variable definition."""

    name: str
    description: str | None = None
    required: bool = False
    default_value: str | None = None

    @field_validator("name")
    @classmethod
    def check_name_format(cls, v: str) -> str:
        """Validate variable name format."""
        return validate_variable_name(v)


class PromptTemplateCreate(BaseModel):
    """
    Schema for creating a prompt template.

    When `variables` is omitted, they are extracted from `{{ name }}` placeholders in content.
    """

    name: str = Field(max_length=100)
    description: str = ""
    content: str
    variables: list[TemplateVariable] | None = None
    category: str | None = Field(default=None, max_length=50)
    tags: list[str] = Field(default_factory=list)
    username: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def check_name_format(cls, v: str) -> str:
        """Validate prompt name format."""
        return validate_entity_name(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @model_validator(mode="after")
    def check_duplicate_variables(self) -> "PromptTemplateCreate":
        """Ensure no duplicate variable names."""
        check_duplicate_variable_names(self.variables)
        return self


class PromptTemplateUpdate(BaseModel):
    """
    Schema for updating a prompt template.

    A changed `content` creates a new version. If content changes and `variables`
    is omitted, variables are re-extracted from the new content.
    """

    description: str | None = None
    content: str | None = None
    variables: list[TemplateVariable] | None = None
    category: str | None = Field(default=None, max_length=50)
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

    @model_validator(mode="after")
    def check_duplicate_variables(self) -> "PromptTemplateUpdate":
        """Ensure no duplicate variable names if variables provided."""
        check_duplicate_variable_names(self.variables)
        return self


class PromptTemplateResponse(BaseModel):
    """Schema for prompt template responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    description: str
    content: str
    variables: list[TemplateVariable]
    category: str | None = None
    tags: list[str]
    current_version: int
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime


class PromptRenderRequest(BaseModel):
    """Request schema for rendering a prompt template."""

    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Variable values keyed by variable name. Declared defaults fill "
                    "anything omitted.",
    )


class PromptRenderResponse(BaseModel):
    """Response schema for rendered prompt content."""

    rendered_content: str = Field(
        description="The rendered template with variables applied",
    )

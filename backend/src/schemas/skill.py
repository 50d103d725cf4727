"""Pydantic schemas for skill endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.skill import SkillType
from schemas.validators import validate_and_normalize_tags, validate_entity_name


class SkillCreate(BaseModel):
    """Schema for creating a skill."""

    name: str = Field(max_length=100)
    type: SkillType = SkillType.INSTRUCTIONS
    description: str = ""
    content: str
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True
    username: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def check_name_format(cls, v: str) -> str:
        """Validate skill name format."""
        return validate_entity_name(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class SkillUpdate(BaseModel):
    """Schema for updating a skill. The type is fixed at creation."""

    description: str | None = None
    content: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None
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


class SkillResponse(BaseModel):
    """Schema for skill responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    type: SkillType
    description: str
    content: str
    tags: list[str]
    is_active: bool
    current_version: int
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime

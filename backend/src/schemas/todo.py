"""Pydantic schemas for todo endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.todo import TodoPriority, TodoStatus
from schemas.validators import validate_and_normalize_tags


class QuestionAnswer(BaseModel):
    """A clarifying question and its answer recorded on a todo."""

    question: str
    answer: str
    asked_at: datetime
    context: str | None = None


class QuestionAnswerCreate(BaseModel):
    """Schema for appending a Q&A entry to a todo."""

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    context: str | None = None
    username: str | None = Field(default=None, max_length=100)


class TodoCreate(BaseModel):
    """Schema for creating a todo."""

    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    status: TodoStatus = TodoStatus.PENDING
    priority: TodoPriority = TodoPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    due_date: datetime | None = None
    parent_id: UUID | None = None
    username: str | None = Field(default=None, max_length=100)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class TodoUpdate(BaseModel):
    """
    Schema for updating a todo.

    Changes to title, description or status create a new version. Priority, tags,
    due date and parent update in place; due_date and parent_id may be cleared with null.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    status: TodoStatus | None = None
    priority: TodoPriority | None = None
    tags: list[str] | None = None
    due_date: datetime | None = None
    parent_id: UUID | None = None
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


class TodoStatusChange(BaseModel):
    """Optional note and author for complete/start shortcuts."""

    note: str | None = None
    username: str | None = Field(default=None, max_length=100)


class TodoResponse(BaseModel):
    """Schema for todo responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    title: str
    description: str
    status: TodoStatus
    priority: TodoPriority
    tags: list[str]
    due_date: datetime | None = None
    completed_at: datetime | None = None
    parent_id: UUID | None = None
    questions_answers: list[QuestionAnswer] = Field(default_factory=list)
    current_version: int
    authors: list[str] = Field(default_factory=list)
    last_author: str | None = None
    created_at: datetime
    updated_at: datetime


class TodoStats(BaseModel):
    """Todo counts for a project."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    by_priority: dict[str, int] = Field(default_factory=dict)

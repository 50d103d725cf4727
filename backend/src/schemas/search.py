"""Pydantic schemas for federated search."""
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class SearchType(StrEnum):
    """Searchable collections, in tie-break order."""

    DOCUMENT = "document"
    SKILL = "skill"
    SNIPPET = "snippet"
    PROMPT = "prompt"


class SearchHit(BaseModel):
    """A single ranked search result."""

    type: SearchType
    project_slug: str
    name: str = Field(description="Document type, or skill/snippet/prompt name")
    title: str | None = None
    excerpt: str
    score: float
    tags: list[str] = Field(default_factory=list)
    updated_at: datetime


class SearchResponse(BaseModel):
    """Paginated federated search results."""

    results: list[SearchHit]
    total: int  # Merged hit count before pagination
    offset: int
    limit: int
    has_more: bool

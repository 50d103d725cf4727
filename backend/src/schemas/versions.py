"""Pydantic schemas for version history endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class VersionSummary(BaseModel):
    """One entry of a version history listing."""

    version: int
    changed_at: datetime
    change_note: str | None = None
    author: str | None = None


class VersionSnapshot(VersionSummary):
    """
    Full snapshot of a version.

    Carries the entity's snapshot fields in addition to the summary fields:
    `content` for documents, skills and prompts (plus `variables` for prompts),
    `code` for snippets, and `title`/`description`/`status` for todos.
    """

    model_config = ConfigDict(extra="allow")

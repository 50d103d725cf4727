"""Service layer for code snippet operations."""
from __future__ import annotations

from typing import Any

from sqlalchemy.sql import Select

from models.project import Project
from models.snippet import CodeSnippet
from schemas.snippet import SnippetCreate
from services.versioned_entity_service import VersionedEntityService


class SnippetService(VersionedEntityService[CodeSnippet]):
    """Code snippet operations. Language is fixed at creation; `code` is versioned."""

    model = CodeSnippet
    entity_name = "snippet"
    key_field = "name"
    versioned_fields = ("code",)
    snapshot_fields = ("code",)

    def _build_entity(self, project: Project, data: SnippetCreate) -> CodeSnippet:
        return CodeSnippet(
            project_id=project.id,
            name=data.name,
            language=data.language.lower(),
            code=data.code,
            description=data.description,
            tags=list(data.tags),
        )

    def _apply_list_filters(
        self,
        query: Select,
        language: str | None = None,
        **_: Any,
    ) -> Select:
        if language:
            query = query.where(CodeSnippet.language == language.strip().lower())
        return query


snippet_service = SnippetService()

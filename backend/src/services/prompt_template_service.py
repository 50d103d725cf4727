"""Service layer for prompt template operations."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from models.project import Project
from models.prompt_template import PromptTemplate
from schemas.prompt_template import PromptTemplateCreate
from services.template_renderer import extract_variables, render_template
from services.versioned_entity_service import VersionedEntityService

logger = logging.getLogger(__name__)


class PromptTemplateService(VersionedEntityService[PromptTemplate]):
    """
    Prompt template operations.

    `content` is versioned and each snapshot also records the variable
    definitions that belonged to that content.
    """

    model = PromptTemplate
    entity_name = "prompt template"
    key_field = "name"
    versioned_fields = ("content",)
    snapshot_fields = ("content", "variables")
    nullable_fields = ("category",)

    def _build_entity(self, project: Project, data: PromptTemplateCreate) -> PromptTemplate:
        if data.variables is None:
            variables = extract_variables(data.content)
        else:
            variables = [v.model_dump() for v in data.variables]
        return PromptTemplate(
            project_id=project.id,
            name=data.name,
            description=data.description,
            content=data.content,
            variables=variables,
            category=data.category,
            tags=list(data.tags),
        )

    def _apply_list_filters(
        self,
        query: Select,
        category: str | None = None,
        **_: Any,
    ) -> Select:
        if category:
            query = query.where(PromptTemplate.category == category)
        return query

    async def _prepare_updates(
        self,
        db: AsyncSession,  # noqa: ARG002
        entity: PromptTemplate,
        updates: dict[str, Any],
    ) -> dict[str, Any]:
        """Re-extract variables when content changes without an explicit variable list."""
        content = updates.get("content")
        if (
            content is not None
            and content != entity.content
            and updates.get("variables") is None
        ):
            updates["variables"] = extract_variables(content)
        return updates

    async def render(
        self,
        db: AsyncSession,
        project_slug: str,
        name: str,
        variables: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Render a prompt template with the supplied variables.

        Returns:
            The rendered text, or None if the project or template does not exist.

        Raises:
            MissingRequiredVariableError: If a required variable is missing and has no default.
            TemplateError: If the template fails to parse or render.
        """
        template = await self.get(db, project_slug, name)
        if template is None:
            return None
        logger.debug("Rendering prompt template %s/%s", project_slug, name)
        return render_template(template.content, variables, template.variables or [])


prompt_template_service = PromptTemplateService()

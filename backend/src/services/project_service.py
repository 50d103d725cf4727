"""Service layer for project operations and the project aggregate read model."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.document import DocumentType, ProjectDocument
from models.project import Project
from models.prompt_template import PromptTemplate
from models.skill import Skill
from models.snippet import CodeSnippet
from models.todo import Todo, TodoStatus
from schemas.project import (
    ContentCounts,
    ProjectCreate,
    ProjectListItem,
    ProjectResponse,
    ProjectUpdate,
    TodoRollup,
)
from services.exceptions import SlugConflictError
from services.utils import merge_unique, tags_match_any

logger = logging.getLogger(__name__)

# Child tables removed with their project, children before parent
CHILD_MODELS = (Todo, ProjectDocument, Skill, CodeSnippet, PromptTemplate)

COUNTED_MODELS: dict[str, Any] = {
    "documents": ProjectDocument,
    "skills": Skill,
    "snippets": CodeSnippet,
    "prompts": PromptTemplate,
}


def completion_rate(completed: int, total: int) -> str:
    """Percentage of completed todos, rounded to a whole number ("0%" when empty)."""
    if total == 0:
        return "0%"
    return f"{round(100 * completed / total)}%"


class ProjectService:
    """Project CRUD, cascade delete, aggregate counts and context assembly."""

    async def create(self, db: AsyncSession, data: ProjectCreate) -> Project:
        """
        Create a project.

        Raises:
            SlugConflictError: If the slug is already taken.
        """
        if await self.exists(db, data.slug):
            raise SlugConflictError(data.slug)

        project = Project(
            slug=data.slug,
            name=data.name,
            description=data.description,
            tags=list(data.tags),
            metadata_=dict(data.metadata),
            is_template=data.is_template,
            authors=[data.username] if data.username else [],
            last_author=data.username,
        )
        db.add(project)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise SlugConflictError(data.slug) from e

        await db.refresh(project)
        logger.info("Created project %s", project.slug)
        return project

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Project | None:
        """Get a project by slug (input is lowercased)."""
        result = await db.execute(select(Project).where(Project.slug == slug.strip().lower()))
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, slug: str) -> bool:
        """True if a project with this slug exists."""
        result = await db.execute(
            select(Project.id).where(Project.slug == slug.strip().lower()),
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    def _list_filters(tags: list[str] | None, is_template: bool | None) -> list:
        conditions = []
        if is_template is not None:
            conditions.append(Project.is_template.is_(is_template))
        tag_filter = tags_match_any(Project.tags, tags)
        if tag_filter is not None:
            conditions.append(tag_filter)
        return conditions

    async def list(
        self,
        db: AsyncSession,
        tags: list[str] | None = None,
        is_template: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Project]:
        """List projects, most recently updated first."""
        query = (
            select(Project)
            .where(*self._list_filters(tags, is_template))
            .order_by(Project.updated_at.desc(), Project.slug)
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        db: AsyncSession,
        tags: list[str] | None = None,
        is_template: bool | None = None,
    ) -> int:
        """Count projects matching the list filters."""
        query = select(func.count()).select_from(Project).where(
            *self._list_filters(tags, is_template),
        )
        return (await db.execute(query)).scalar_one()

    async def update(
        self,
        db: AsyncSession,
        slug: str,
        data: ProjectUpdate,
    ) -> Project | None:
        """Update project name, description, tags or metadata. Returns None if missing."""
        project = await self.get_by_slug(db, slug)
        if project is None:
            return None

        updates = data.model_dump(exclude_unset=True, exclude={"username"})
        for field, value in updates.items():
            if value is None:
                continue
            if field == "metadata":
                project.metadata_ = dict(value)
            else:
                setattr(project, field, value)
        if data.username:
            project.authors = merge_unique(project.authors or [], data.username)
            project.last_author = data.username

        await db.flush()
        await db.refresh(project)
        logger.info("Updated project %s", project.slug)
        return project

    async def delete(self, db: AsyncSession, slug: str) -> bool:
        """
        Delete a project and everything in it.

        Documents, skills, snippets, prompt templates and todos are removed
        explicitly, so the cascade does not depend on database foreign key support.
        """
        project = await self.get_by_slug(db, slug)
        if project is None:
            return False

        for model in CHILD_MODELS:
            await db.execute(delete(model).where(model.project_id == project.id))
        await db.delete(project)
        await db.flush()
        logger.info("Deleted project %s and its content", slug)
        return True

    # --- Aggregate read model ---

    async def _counts_by_project(
        self,
        db: AsyncSession,
        project_ids: list[UUID],
    ) -> dict[UUID, ContentCounts]:
        counts = {pid: ContentCounts() for pid in project_ids}
        if not project_ids:
            return counts
        for attr, model in COUNTED_MODELS.items():
            result = await db.execute(
                select(model.project_id, func.count())
                .where(model.project_id.in_(project_ids))
                .group_by(model.project_id),
            )
            for project_id, count in result.all():
                setattr(counts[project_id], attr, count)
        return counts

    async def _todo_rollups(
        self,
        db: AsyncSession,
        project_ids: list[UUID],
    ) -> dict[UUID, TodoRollup]:
        tallies: dict[UUID, dict[str, int]] = {
            pid: {s.value: 0 for s in TodoStatus} for pid in project_ids
        }
        if project_ids:
            result = await db.execute(
                select(Todo.project_id, Todo.status, func.count())
                .where(Todo.project_id.in_(project_ids))
                .group_by(Todo.project_id, Todo.status),
            )
            for project_id, status, count in result.all():
                tallies[project_id][status] = count
        rollups = {}
        for pid, tally in tallies.items():
            total = sum(tally.values())
            rollups[pid] = TodoRollup(
                total=total,
                pending=tally[TodoStatus.PENDING.value],
                in_progress=tally[TodoStatus.IN_PROGRESS.value],
                completed=tally[TodoStatus.COMPLETED.value],
                completion_rate=completion_rate(tally[TodoStatus.COMPLETED.value], total),
            )
        return rollups

    async def _document_presence(
        self,
        db: AsyncSession,
        project_ids: list[UUID],
    ) -> dict[UUID, dict[str, bool]]:
        presence = {pid: {t.value: False for t in DocumentType} for pid in project_ids}
        if project_ids:
            result = await db.execute(
                select(ProjectDocument.project_id, ProjectDocument.type)
                .where(ProjectDocument.project_id.in_(project_ids)),
            )
            for project_id, doc_type in result.all():
                presence[project_id][doc_type] = True
        return presence

    async def list_with_counts(
        self,
        db: AsyncSession,
        tags: list[str] | None = None,
        is_template: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ProjectListItem]:
        """
        List projects with per-type content counts.

        User projects additionally carry a todo rollup and a document-type
        presence map; template projects carry neither.
        """
        projects = await self.list(db, tags, is_template, limit, offset)
        ids = [p.id for p in projects]
        user_ids = [p.id for p in projects if not p.is_template]
        counts = await self._counts_by_project(db, ids)
        rollups = await self._todo_rollups(db, user_ids)
        presence = await self._document_presence(db, user_ids)

        items = []
        for project in projects:
            base = ProjectResponse.model_validate(project).model_dump()
            items.append(ProjectListItem(
                **base,
                counts=counts[project.id],
                todos=rollups.get(project.id),
                documents=presence.get(project.id),
            ))
        return items

    async def get_context(
        self,
        db: AsyncSession,
        slug: str,
        include_documents: bool = True,
        include_skills: bool = True,
        include_snippets: bool = False,
        include_prompts: bool = False,
    ) -> dict[str, Any] | None:
        """
        Assemble a project's working context.

        Documents and active skills are included by default; snippets and
        prompt templates only on request. Returns None if the project is missing.
        """
        project = await self.get_by_slug(db, slug)
        if project is None:
            return None

        async def _children(model: Any, *criteria: Any, order: Any) -> list:
            result = await db.execute(
                select(model).where(model.project_id == project.id, *criteria).order_by(order),
            )
            return list(result.scalars().all())

        context: dict[str, Any] = {"project": project}
        if include_documents:
            context["documents"] = await _children(
                ProjectDocument, order=ProjectDocument.type,
            )
        if include_skills:
            context["skills"] = await _children(
                Skill, Skill.is_active.is_(True), order=Skill.name,
            )
        if include_snippets:
            context["snippets"] = await _children(CodeSnippet, order=CodeSnippet.name)
        if include_prompts:
            context["prompts"] = await _children(PromptTemplate, order=PromptTemplate.name)
        return context


project_service = ProjectService()

"""
Service layer for todo operations.

Todos are addressed by id rather than by project + natural key. Title,
description and status are versioned; the remaining fields update in place.
"""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.project import Project
from models.todo import Todo, TodoPriority, TodoStatus
from schemas.todo import QuestionAnswerCreate, TodoCreate, TodoUpdate
from services.exceptions import TodoHierarchyError
from services.utils import tags_match_any
from services.versioned_entity_service import VersionedEntityService

logger = logging.getLogger(__name__)

DEFAULT_COMPLETE_NOTE = "Marked as completed"
DEFAULT_START_NOTE = "Started work"

OPEN_STATUSES = (TodoStatus.PENDING.value, TodoStatus.IN_PROGRESS.value)
CLOSED_STATUSES = (TodoStatus.COMPLETED.value, TodoStatus.CANCELLED.value)

# Highest priority sorts first
PRIORITY_RANK = case(
    {
        TodoPriority.CRITICAL.value: 4,
        TodoPriority.HIGH.value: 3,
        TodoPriority.MEDIUM.value: 2,
        TodoPriority.LOW.value: 1,
    },
    value=Todo.priority,
    else_=0,
)


class TodoService(VersionedEntityService[Todo]):
    """Todo operations: CRUD, status shortcuts, Q&A, subtasks and stats."""

    model = Todo
    entity_name = "todo"
    key_field = "id"
    versioned_fields = ("title", "description", "status")
    snapshot_fields = ("title", "description", "status")
    nullable_fields = ("due_date", "parent_id", "completed_at")

    def _build_entity(self, project: Project, data: TodoCreate) -> Todo:
        status = TodoStatus(data.status).value
        return Todo(
            project_id=project.id,
            title=data.title,
            description=data.description,
            status=status,
            priority=TodoPriority(data.priority).value,
            tags=list(data.tags),
            due_date=data.due_date,
            parent_id=data.parent_id,
            completed_at=utcnow() if status == TodoStatus.COMPLETED else None,
            questions_answers=[],
        )

    async def _check_parent(
        self,
        db: AsyncSession,
        project_id: UUID,
        parent_id: UUID,
        todo_id: UUID | None = None,
    ) -> None:
        """
        Validate a parent assignment.

        Raises:
            TodoHierarchyError: If the parent is missing, belongs to another project,
                or the assignment would create a cycle.
        """
        if todo_id is not None and parent_id == todo_id:
            raise TodoHierarchyError("A todo cannot be its own parent")
        parent = await db.get(Todo, parent_id)
        if parent is None:
            raise TodoHierarchyError(f"Parent todo {parent_id} not found")
        if parent.project_id != project_id:
            raise TodoHierarchyError("Parent todo belongs to a different project")
        if todo_id is None:
            return
        # Walk up from the proposed parent; reaching this todo means a cycle
        ancestor = parent
        seen: set[UUID] = set()
        while ancestor.parent_id is not None and ancestor.parent_id not in seen:
            if ancestor.parent_id == todo_id:
                raise TodoHierarchyError("Parent assignment would create a cycle")
            seen.add(ancestor.id)
            ancestor = await db.get(Todo, ancestor.parent_id)
            if ancestor is None:
                break

    async def _prepare_updates(
        self,
        db: AsyncSession,
        entity: Todo,
        updates: dict[str, Any],
    ) -> dict[str, Any]:
        if updates.get("parent_id") is not None:
            await self._check_parent(db, entity.project_id, updates["parent_id"], entity.id)
        status = updates.get("status")
        if status is not None:
            status = TodoStatus(status).value
            updates["status"] = status
            if status == TodoStatus.COMPLETED:
                if entity.status != TodoStatus.COMPLETED or entity.completed_at is None:
                    updates["completed_at"] = utcnow()
            else:
                updates["completed_at"] = None
        if updates.get("priority") is not None:
            updates["priority"] = TodoPriority(updates["priority"]).value
        return updates

    # --- CRUD ---

    async def create(
        self,
        db: AsyncSession,
        project_slug: str,
        data: TodoCreate,
    ) -> Todo | None:
        """
        Create a todo in a project.

        Returns:
            The created todo, or None if the project does not exist.

        Raises:
            TodoHierarchyError: If parent_id is invalid.
        """
        project = await self.get_project(db, project_slug)
        if project is None:
            return None
        if data.parent_id is not None:
            await self._check_parent(db, project.id, data.parent_id)

        todo = self._build_entity(project, data)
        todo.current_version = 1
        todo.versions = []
        self._track_author(todo, project, data.username)
        db.add(todo)
        await db.flush()
        await db.refresh(todo)
        logger.info("Created todo %s in project %s", todo.id, project.slug)
        return todo

    async def get(self, db: AsyncSession, todo_id: UUID) -> Todo | None:
        """Get a todo by id."""
        return await db.get(Todo, todo_id)

    async def list(
        self,
        db: AsyncSession,
        project_slug: str,
        status: list[TodoStatus | str] | None = None,
        priority: list[TodoPriority | str] | None = None,
        tags: list[str] | None = None,
        parent_id: UUID | None = None,
        root_only: bool = False,
        include_completed: bool = False,
    ) -> list[Todo]:
        """
        List todos in a project, highest priority first, then newest first.

        Completed and cancelled todos are excluded unless a status filter is
        given or include_completed is set. A missing project yields [].
        """
        project = await self.get_project(db, project_slug)
        if project is None:
            return []

        query = select(Todo).where(Todo.project_id == project.id)
        if status:
            query = query.where(Todo.status.in_([TodoStatus(s).value for s in status]))
        elif not include_completed:
            query = query.where(Todo.status.in_(OPEN_STATUSES))
        if priority:
            query = query.where(Todo.priority.in_([TodoPriority(p).value for p in priority]))
        if parent_id is not None:
            query = query.where(Todo.parent_id == parent_id)
        elif root_only:
            query = query.where(Todo.parent_id.is_(None))
        tag_filter = tags_match_any(Todo.tags, tags)
        if tag_filter is not None:
            query = query.where(tag_filter)
        query = query.order_by(PRIORITY_RANK.desc(), Todo.created_at.desc(), Todo.id.desc())

        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_pending(self, db: AsyncSession, project_slug: str) -> list[Todo]:
        """Pending and in-progress todos."""
        return await self.list(db, project_slug, status=list(OPEN_STATUSES))

    async def list_completed(self, db: AsyncSession, project_slug: str) -> list[Todo]:
        """Completed todos."""
        return await self.list(db, project_slug, status=[TodoStatus.COMPLETED])

    async def update(
        self,
        db: AsyncSession,
        todo_id: UUID,
        data: TodoUpdate,
    ) -> Todo | None:
        """
        Update a todo.

        Raises:
            StaleVersionError: If expected_version mismatches or a concurrent write won.
            TodoHierarchyError: If parent_id is invalid.
        """
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        project = await db.get(Project, todo.project_id)
        return await self._update_entity(db, project, todo, data)

    async def delete(self, db: AsyncSession, todo_id: UUID) -> bool:
        """Delete a todo. Its subtasks are kept and detached."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return False
        await db.execute(
            update(Todo)
            .where(Todo.parent_id == todo_id)
            .values(parent_id=None)
            .execution_options(synchronize_session="fetch"),
        )
        await db.delete(todo)
        await db.flush()
        logger.info("Deleted todo %s", todo_id)
        return True

    # --- Status shortcuts ---

    async def mark_complete(
        self,
        db: AsyncSession,
        todo_id: UUID,
        note: str | None = None,
        username: str | None = None,
    ) -> Todo | None:
        """Set status to completed."""
        return await self.update(
            db,
            todo_id,
            TodoUpdate(
                status=TodoStatus.COMPLETED,
                change_note=note or DEFAULT_COMPLETE_NOTE,
                username=username,
            ),
        )

    async def mark_in_progress(
        self,
        db: AsyncSession,
        todo_id: UUID,
        note: str | None = None,
        username: str | None = None,
    ) -> Todo | None:
        """Set status to in_progress."""
        return await self.update(
            db,
            todo_id,
            TodoUpdate(
                status=TodoStatus.IN_PROGRESS,
                change_note=note or DEFAULT_START_NOTE,
                username=username,
            ),
        )

    # --- Q&A and subtasks ---

    async def add_qa(
        self,
        db: AsyncSession,
        todo_id: UUID,
        data: QuestionAnswerCreate,
    ) -> Todo | None:
        """Append a question/answer pair. Does not create a new version."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        entry = {
            "question": data.question,
            "answer": data.answer,
            "asked_at": utcnow().isoformat(),
            "context": data.context,
        }
        todo.questions_answers = [*(todo.questions_answers or []), entry]
        if data.username:
            project = await db.get(Project, todo.project_id)
            self._track_author(todo, project, data.username)
        await db.flush()
        await db.refresh(todo)
        return todo

    async def get_qas(self, db: AsyncSession, todo_id: UUID) -> list[dict[str, Any]] | None:
        """Q&A entries in insertion order, or None if the todo does not exist."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        return list(todo.questions_answers or [])

    async def get_subtasks(self, db: AsyncSession, todo_id: UUID) -> list[Todo] | None:
        """Direct children of a todo, or None if the todo does not exist."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        result = await db.execute(
            select(Todo)
            .where(Todo.parent_id == todo_id)
            .order_by(PRIORITY_RANK.desc(), Todo.created_at.desc(), Todo.id.desc()),
        )
        return list(result.scalars().all())

    async def get_stats(self, db: AsyncSession, project_slug: str) -> dict[str, Any] | None:
        """Status and priority counts for a project, or None if it does not exist."""
        project = await self.get_project(db, project_slug)
        if project is None:
            return None
        result = await db.execute(
            select(Todo.status, Todo.priority, func.count())
            .where(Todo.project_id == project.id)
            .group_by(Todo.status, Todo.priority),
        )
        stats: dict[str, Any] = {
            "total": 0,
            **{s.value: 0 for s in TodoStatus},
            "by_priority": {p.value: 0 for p in TodoPriority},
        }
        for status, priority, count in result.all():
            stats["total"] += count
            stats[status] = stats.get(status, 0) + count
            stats["by_priority"][priority] = stats["by_priority"].get(priority, 0) + count
        return stats

    # --- Versions ---

    async def get_version(
        self,
        db: AsyncSession,
        todo_id: UUID,
        version: int,
    ) -> dict[str, Any] | None:
        """Get a historical (or the current) version snapshot of a todo."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        return self.version_of(todo, version)

    async def get_version_history(
        self,
        db: AsyncSession,
        todo_id: UUID,
    ) -> list[dict[str, Any]] | None:
        """Version summaries for a todo, newest first."""
        todo = await self.get(db, todo_id)
        if todo is None:
            return None
        return self.history_of(todo)


todo_service = TodoService()

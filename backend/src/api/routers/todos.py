"""
Todo endpoints.

Todos are created and listed under their project and addressed by id afterwards.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from models.todo import TodoPriority, TodoStatus
from schemas.todo import (
    QuestionAnswer,
    QuestionAnswerCreate,
    TodoCreate,
    TodoResponse,
    TodoStats,
    TodoStatusChange,
    TodoUpdate,
)
from schemas.versions import VersionSnapshot, VersionSummary
from services.todo_service import todo_service

project_router = APIRouter(prefix="/projects/{project_slug}/todos", tags=["todos"])
router = APIRouter(prefix="/todos", tags=["todos"])


# --- Project-scoped ---

@project_router.post("/", response_model=TodoResponse, status_code=201)
async def create_todo(
    project_slug: str,
    data: TodoCreate,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Create a todo. Returns 400 if parent_id is invalid."""
    todo = await todo_service.create(db, project_slug, data)
    if todo is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return TodoResponse.model_validate(todo)


@project_router.get("/", response_model=list[TodoResponse])
async def list_todos(
    project_slug: str,
    status: list[TodoStatus] | None = Query(default=None),
    priority: list[TodoPriority] | None = Query(default=None),
    tags: list[str] | None = Query(default=None),
    parent_id: UUID | None = Query(default=None),
    root_only: bool = Query(default=False, description="Only todos without a parent"),
    include_completed: bool = Query(default=False),
    db: AsyncSession = Depends(get_async_session),
) -> list[TodoResponse]:
    """
    List todos, highest priority first then newest first.

    Completed and cancelled todos are hidden unless a status filter is given
    or include_completed is set.
    """
    todos = await todo_service.list(
        db,
        project_slug,
        status=status,
        priority=priority,
        tags=tags,
        parent_id=parent_id,
        root_only=root_only,
        include_completed=include_completed,
    )
    return [TodoResponse.model_validate(t) for t in todos]


@project_router.get("/pending", response_model=list[TodoResponse])
async def list_pending_todos(
    project_slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[TodoResponse]:
    """Pending and in-progress todos."""
    todos = await todo_service.list_pending(db, project_slug)
    return [TodoResponse.model_validate(t) for t in todos]


@project_router.get("/completed", response_model=list[TodoResponse])
async def list_completed_todos(
    project_slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[TodoResponse]:
    """Completed todos."""
    todos = await todo_service.list_completed(db, project_slug)
    return [TodoResponse.model_validate(t) for t in todos]


@project_router.get("/stats", response_model=TodoStats)
async def get_todo_stats(
    project_slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> TodoStats:
    """Todo counts by status and priority."""
    stats = await todo_service.get_stats(db, project_slug)
    if stats is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return TodoStats(**stats)


# --- By id ---

@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Get a todo by id."""
    todo = await todo_service.get(db, todo_id)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse.model_validate(todo)


@router.put("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: UUID,
    data: TodoUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Update a todo. Title, description or status changes create a new version."""
    todo = await todo_service.update(db, todo_id, data)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse.model_validate(todo)


@router.delete("/{todo_id}", status_code=204)
async def delete_todo(
    todo_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a todo. Subtasks are kept and detached."""
    if not await todo_service.delete(db, todo_id):
        raise HTTPException(status_code=404, detail="Todo not found")


@router.post("/{todo_id}/complete", response_model=TodoResponse)
async def complete_todo(
    todo_id: UUID,
    data: TodoStatusChange | None = None,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Mark a todo as completed."""
    data = data or TodoStatusChange()
    todo = await todo_service.mark_complete(db, todo_id, data.note, data.username)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse.model_validate(todo)


@router.post("/{todo_id}/start", response_model=TodoResponse)
async def start_todo(
    todo_id: UUID,
    data: TodoStatusChange | None = None,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Mark a todo as in progress."""
    data = data or TodoStatusChange()
    todo = await todo_service.mark_in_progress(db, todo_id, data.note, data.username)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse.model_validate(todo)


@router.post("/{todo_id}/qa", response_model=TodoResponse, status_code=201)
async def add_todo_qa(
    todo_id: UUID,
    data: QuestionAnswerCreate,
    db: AsyncSession = Depends(get_async_session),
) -> TodoResponse:
    """Append a question and answer to a todo."""
    todo = await todo_service.add_qa(db, todo_id, data)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse.model_validate(todo)


@router.get("/{todo_id}/qa", response_model=list[QuestionAnswer])
async def list_todo_qas(
    todo_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[QuestionAnswer]:
    """Q&A entries in the order they were added."""
    qas = await todo_service.get_qas(db, todo_id)
    if qas is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return [QuestionAnswer(**qa) for qa in qas]


@router.get("/{todo_id}/subtasks", response_model=list[TodoResponse])
async def list_subtasks(
    todo_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[TodoResponse]:
    """Direct subtasks of a todo."""
    subtasks = await todo_service.get_subtasks(db, todo_id)
    if subtasks is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return [TodoResponse.model_validate(t) for t in subtasks]


@router.get("/{todo_id}/versions", response_model=list[VersionSummary])
async def get_todo_versions(
    todo_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[VersionSummary]:
    """Version history, newest first."""
    history = await todo_service.get_version_history(db, todo_id)
    if history is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return [VersionSummary(**h) for h in history]


@router.get("/{todo_id}/versions/{version}", response_model=VersionSnapshot)
async def get_todo_version(
    todo_id: UUID,
    version: int,
    db: AsyncSession = Depends(get_async_session),
) -> VersionSnapshot:
    """Get the title, description and status of a specific version."""
    snapshot = await todo_service.get_version(db, todo_id, version)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionSnapshot(**snapshot)

"""Project CRUD, listing with counts, and project context endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.project import (
    ProjectContextResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from services.project_service import project_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("/", response_model=ProjectResponse, status_code=201)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    """Create a new project. Returns 409 if the slug is taken."""
    project = await project_service.create(db, data)
    return ProjectResponse.model_validate(project)


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    tags: list[str] | None = Query(default=None, description="Match any of these tags"),
    is_template: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_session),
) -> ProjectListResponse:
    """List projects with content counts, most recently updated first."""
    items = await project_service.list_with_counts(db, tags, is_template, limit, offset)
    total = await project_service.count(db, tags, is_template)
    return ProjectListResponse(
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        has_more=offset + len(items) < total,
    )


@router.get("/{slug}", response_model=ProjectResponse)
async def get_project(
    slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    """Get a project by slug."""
    project = await project_service.get_by_slug(db, slug)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.model_validate(project)


@router.put("/{slug}", response_model=ProjectResponse)
async def update_project(
    slug: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    """Update project name, description, tags or metadata."""
    project = await project_service.update(db, slug, data)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.model_validate(project)


@router.delete("/{slug}", status_code=204)
async def delete_project(
    slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a project with all of its documents, skills, snippets, prompts and todos."""
    deleted = await project_service.delete(db, slug)
    if not deleted:
        raise HTTPException(status_code=404, detail="Project not found")


@router.get("/{slug}/context", response_model=ProjectContextResponse)
async def get_project_context(
    slug: str,
    include_documents: bool = Query(default=True),
    include_skills: bool = Query(default=True),
    include_snippets: bool = Query(default=False),
    include_prompts: bool = Query(default=False),
    db: AsyncSession = Depends(get_async_session),
) -> ProjectContextResponse:
    """Get a project with its documents and active skills (snippets and prompts on request)."""
    context = await project_service.get_context(
        db, slug, include_documents, include_skills, include_snippets, include_prompts,
    )
    if context is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectContextResponse.model_validate(context, from_attributes=True)

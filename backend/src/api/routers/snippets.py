"""Code snippet endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.snippet import SnippetCreate, SnippetResponse, SnippetUpdate
from schemas.versions import VersionSnapshot, VersionSummary
from services.snippet_service import snippet_service

router = APIRouter(prefix="/projects/{project_slug}/snippets", tags=["snippets"])


@router.post("/", response_model=SnippetResponse, status_code=201)
async def create_snippet(
    project_slug: str,
    data: SnippetCreate,
    db: AsyncSession = Depends(get_async_session),
) -> SnippetResponse:
    """Create a code snippet. Returns 409 if the name is taken in this project."""
    snippet = await snippet_service.create(db, project_slug, data)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return SnippetResponse.model_validate(snippet)


@router.get("/", response_model=list[SnippetResponse])
async def list_snippets(
    project_slug: str,
    language: str | None = Query(default=None),
    tags: list[str] | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> list[SnippetResponse]:
    """List a project's snippets ordered by name."""
    snippets = await snippet_service.list(db, project_slug, tags, language=language)
    return [SnippetResponse.model_validate(s) for s in snippets]


@router.get("/{name}", response_model=SnippetResponse)
async def get_snippet(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> SnippetResponse:
    """Get a snippet by name."""
    snippet = await snippet_service.get(db, project_slug, name)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    return SnippetResponse.model_validate(snippet)


@router.put("/{name}", response_model=SnippetResponse)
async def update_snippet(
    project_slug: str,
    name: str,
    data: SnippetUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> SnippetResponse:
    """Update a snippet. A code change creates a new version."""
    snippet = await snippet_service.update(db, project_slug, name, data)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    return SnippetResponse.model_validate(snippet)


@router.delete("/{name}", status_code=204)
async def delete_snippet(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a snippet."""
    if not await snippet_service.delete(db, project_slug, name):
        raise HTTPException(status_code=404, detail="Snippet not found")


@router.get("/{name}/versions", response_model=list[VersionSummary])
async def get_snippet_versions(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[VersionSummary]:
    """Version history, newest first."""
    history = await snippet_service.get_version_history(db, project_slug, name)
    if history is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    return [VersionSummary(**h) for h in history]


@router.get("/{name}/versions/{version}", response_model=VersionSnapshot)
async def get_snippet_version(
    project_slug: str,
    name: str,
    version: int,
    db: AsyncSession = Depends(get_async_session),
) -> VersionSnapshot:
    """Get the code of a specific version."""
    snapshot = await snippet_service.get_version(db, project_slug, name, version)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionSnapshot(**snapshot)

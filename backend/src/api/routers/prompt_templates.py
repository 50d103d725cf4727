"""Prompt template endpoints, including rendering."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.prompt_template import (
    PromptRenderRequest,
    PromptRenderResponse,
    PromptTemplateCreate,
    PromptTemplateResponse,
    PromptTemplateUpdate,
)
from schemas.versions import VersionSnapshot, VersionSummary
from services.prompt_template_service import prompt_template_service

router = APIRouter(prefix="/projects/{project_slug}/prompts", tags=["prompts"])


@router.post("/", response_model=PromptTemplateResponse, status_code=201)
async def create_prompt_template(
    project_slug: str,
    data: PromptTemplateCreate,
    db: AsyncSession = Depends(get_async_session),
) -> PromptTemplateResponse:
    """
    Create a prompt template.

    Variables are extracted from `{{ name }}` placeholders when none are given.
    Returns 409 if the name is taken in this project.
    """
    template = await prompt_template_service.create(db, project_slug, data)
    if template is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return PromptTemplateResponse.model_validate(template)


@router.get("/", response_model=list[PromptTemplateResponse])
async def list_prompt_templates(
    project_slug: str,
    category: str | None = Query(default=None),
    tags: list[str] | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> list[PromptTemplateResponse]:
    """List a project's prompt templates ordered by name."""
    templates = await prompt_template_service.list(db, project_slug, tags, category=category)
    return [PromptTemplateResponse.model_validate(t) for t in templates]


@router.get("/{name}", response_model=PromptTemplateResponse)
async def get_prompt_template(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> PromptTemplateResponse:
    """Get a prompt template by name."""
    template = await prompt_template_service.get(db, project_slug, name)
    if template is None:
        raise HTTPException(status_code=404, detail="Prompt template not found")
    return PromptTemplateResponse.model_validate(template)


@router.put("/{name}", response_model=PromptTemplateResponse)
async def update_prompt_template(
    project_slug: str,
    name: str,
    data: PromptTemplateUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> PromptTemplateResponse:
    """Update a prompt template. A content change creates a new version."""
    template = await prompt_template_service.update(db, project_slug, name, data)
    if template is None:
        raise HTTPException(status_code=404, detail="Prompt template not found")
    return PromptTemplateResponse.model_validate(template)


@router.delete("/{name}", status_code=204)
async def delete_prompt_template(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a prompt template."""
    if not await prompt_template_service.delete(db, project_slug, name):
        raise HTTPException(status_code=404, detail="Prompt template not found")


@router.post("/{name}/render", response_model=PromptRenderResponse)
async def render_prompt_template(
    project_slug: str,
    name: str,
    request: PromptRenderRequest,
    db: AsyncSession = Depends(get_async_session),
) -> PromptRenderResponse:
    """
    Render a prompt template.

    - Declared defaults fill omitted variables
    - Missing required variables return 400
    - Undeclared or missing optional variables render as empty text
    """
    rendered = await prompt_template_service.render(db, project_slug, name, request.variables)
    if rendered is None:
        raise HTTPException(status_code=404, detail="Prompt template not found")
    return PromptRenderResponse(rendered_content=rendered)


@router.get("/{name}/versions", response_model=list[VersionSummary])
async def get_prompt_template_versions(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[VersionSummary]:
    """Version history, newest first."""
    history = await prompt_template_service.get_version_history(db, project_slug, name)
    if history is None:
        raise HTTPException(status_code=404, detail="Prompt template not found")
    return [VersionSummary(**h) for h in history]


@router.get("/{name}/versions/{version}", response_model=VersionSnapshot)
async def get_prompt_template_version(
    project_slug: str,
    name: str,
    version: int,
    db: AsyncSession = Depends(get_async_session),
) -> VersionSnapshot:
    """Get the content and variables of a specific version."""
    snapshot = await prompt_template_service.get_version(db, project_slug, name, version)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionSnapshot(**snapshot)

"""Skill endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from models.skill import SkillType
from schemas.skill import SkillCreate, SkillResponse, SkillUpdate
from schemas.versions import VersionSnapshot, VersionSummary
from services.skill_service import skill_service

router = APIRouter(prefix="/projects/{project_slug}/skills", tags=["skills"])


@router.post("/", response_model=SkillResponse, status_code=201)
async def create_skill(
    project_slug: str,
    data: SkillCreate,
    db: AsyncSession = Depends(get_async_session),
) -> SkillResponse:
    """Create a skill. Returns 409 if the name is taken in this project."""
    skill = await skill_service.create(db, project_slug, data)
    if skill is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return SkillResponse.model_validate(skill)


@router.get("/", response_model=list[SkillResponse])
async def list_skills(
    project_slug: str,
    type: SkillType | None = Query(default=None),  # noqa: A002
    tags: list[str] | None = Query(default=None),
    active_only: bool = Query(default=False),
    db: AsyncSession = Depends(get_async_session),
) -> list[SkillResponse]:
    """List a project's skills ordered by name."""
    skills = await skill_service.list(
        db, project_slug, tags, skill_type=type, active_only=active_only,
    )
    return [SkillResponse.model_validate(s) for s in skills]


@router.get("/{name}", response_model=SkillResponse)
async def get_skill(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> SkillResponse:
    """Get a skill by name."""
    skill = await skill_service.get(db, project_slug, name)
    if skill is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    return SkillResponse.model_validate(skill)


@router.put("/{name}", response_model=SkillResponse)
async def update_skill(
    project_slug: str,
    name: str,
    data: SkillUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> SkillResponse:
    """Update a skill. A content change creates a new version."""
    skill = await skill_service.update(db, project_slug, name, data)
    if skill is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    return SkillResponse.model_validate(skill)


@router.delete("/{name}", status_code=204)
async def delete_skill(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a skill."""
    if not await skill_service.delete(db, project_slug, name):
        raise HTTPException(status_code=404, detail="Skill not found")


@router.get("/{name}/versions", response_model=list[VersionSummary])
async def get_skill_versions(
    project_slug: str,
    name: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[VersionSummary]:
    """Version history, newest first."""
    history = await skill_service.get_version_history(db, project_slug, name)
    if history is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    return [VersionSummary(**h) for h in history]


@router.get("/{name}/versions/{version}", response_model=VersionSnapshot)
async def get_skill_version(
    project_slug: str,
    name: str,
    version: int,
    db: AsyncSession = Depends(get_async_session),
) -> VersionSnapshot:
    """Get the content of a specific version."""
    snapshot = await skill_service.get_version(db, project_slug, name, version)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionSnapshot(**snapshot)

"""Catalog endpoints for browsing template projects and seeding new projects."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.catalog import (
    CatalogResponse,
    InitFromTechstackRequest,
    InitFromTechstackResponse,
    SkillCatalogResponse,
    SkillContentResponse,
    TechstackBrowseResponse,
    TechstackContentResponse,
)
from services.catalog_service import catalog_service

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/projects", response_model=CatalogResponse)
async def browse_catalog(
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> CatalogResponse:
    """Template projects with content counts and derived categories."""
    return CatalogResponse(**await catalog_service.browse_catalog(db, category, search))


@router.get("/skills", response_model=SkillCatalogResponse)
async def browse_skills(
    category: str | None = Query(default=None),
    type: str | None = Query(default=None),  # noqa: A002
    search: str | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> SkillCatalogResponse:
    """Unique skills across template projects."""
    return SkillCatalogResponse(
        **await catalog_service.browse_skills(db, category, type, search),
    )


@router.get("/skills/{name}", response_model=SkillContentResponse)
async def get_skill_content(
    name: str,
    project: str | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> SkillContentResponse:
    """Full content of a skill, from the given project or the first that has it."""
    skill = await catalog_service.get_skill_content(db, name, project)
    if skill is None:
        raise HTTPException(status_code=404, detail="Skill not found")
    return SkillContentResponse(**skill)


@router.get(
    "/techstacks",
    response_model=TechstackBrowseResponse,
    response_model_exclude_none=True,
)
async def browse_techstacks(
    tags: list[str] | None = Query(default=None),
    detailed: bool = Query(default=False),
    db: AsyncSession = Depends(get_async_session),
) -> TechstackBrowseResponse:
    """Projects with a TECHSTACK document: a preview of each, or the full text when detailed."""
    return TechstackBrowseResponse(**await catalog_service.browse_techstacks(db, tags, detailed))


@router.get("/techstacks/{slug}", response_model=TechstackContentResponse)
async def get_techstack_content(
    slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> TechstackContentResponse:
    """A project's TECHSTACK document and coding guidelines."""
    content = await catalog_service.get_techstack_content(db, slug)
    if content is None:
        raise HTTPException(status_code=404, detail="Techstack not found")
    return TechstackContentResponse(**content)


@router.post("/init", response_model=InitFromTechstackResponse, status_code=201)
async def init_from_techstack(
    data: InitFromTechstackRequest,
    db: AsyncSession = Depends(get_async_session),
) -> InitFromTechstackResponse:
    """Create a user project seeded from a template's documents and optionally its skills."""
    result = await catalog_service.init_from_techstack(db, data)
    if result is None:
        raise HTTPException(status_code=404, detail="Source project not found")
    return InitFromTechstackResponse(**result)

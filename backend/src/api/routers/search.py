"""Federated search endpoint."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.search import SearchResponse, SearchType
from services.search_service import search_service

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/", response_model=SearchResponse)
async def search(
    q: str = Query(min_length=1, description="Search text; whitespace separates terms"),
    project: str | None = Query(default=None, description="Restrict to one project slug"),
    types: list[SearchType] | None = Query(default=None),
    tags: list[str] | None = Query(default=None, description="Match any of these tags"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_session),
) -> SearchResponse:
    """
    Search documents, skills, snippets and prompt templates.

    Results from all collections are ranked together; an unknown project
    returns an empty result set.
    """
    try:
        result = await search_service.search(db, q, project, types, tags, limit, offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SearchResponse(**result)

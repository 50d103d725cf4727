"""Project document endpoints. Document types are matched case-insensitively."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from models.document import DocumentType
from schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate
from schemas.versions import VersionSnapshot, VersionSummary
from services.document_service import document_service

router = APIRouter(prefix="/projects/{project_slug}/documents", tags=["documents"])


def _parse_type(doc_type: str) -> str:
    try:
        return DocumentType(doc_type.upper()).value
    except ValueError:
        valid = ", ".join(t.value for t in DocumentType)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid document type: {doc_type}. Valid types: {valid}",
        )


@router.post("/", response_model=DocumentResponse, status_code=201)
async def create_document(
    project_slug: str,
    data: DocumentCreate,
    db: AsyncSession = Depends(get_async_session),
) -> DocumentResponse:
    """Create a document. Returns 409 if the project already has one of this type."""
    document = await document_service.create(db, project_slug, data)
    if document is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return DocumentResponse.model_validate(document)


@router.get("/", response_model=list[DocumentResponse])
async def list_documents(
    project_slug: str,
    tags: list[str] | None = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> list[DocumentResponse]:
    """List a project's documents ordered by type."""
    documents = await document_service.list(db, project_slug, tags)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.get("/{doc_type}", response_model=DocumentResponse)
async def get_document(
    project_slug: str,
    doc_type: str,
    db: AsyncSession = Depends(get_async_session),
) -> DocumentResponse:
    """Get a document by type."""
    document = await document_service.get(db, project_slug, _parse_type(doc_type))
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse.model_validate(document)


@router.put("/{doc_type}", response_model=DocumentResponse)
async def update_document(
    project_slug: str,
    doc_type: str,
    data: DocumentUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> DocumentResponse:
    """Update a document. A content change creates a new version."""
    document = await document_service.update(db, project_slug, _parse_type(doc_type), data)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse.model_validate(document)


@router.delete("/{doc_type}", status_code=204)
async def delete_document(
    project_slug: str,
    doc_type: str,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a document."""
    deleted = await document_service.delete(db, project_slug, _parse_type(doc_type))
    if not deleted:
        raise HTTPException(status_code=404, detail="Document not found")


@router.get("/{doc_type}/versions", response_model=list[VersionSummary])
async def get_document_versions(
    project_slug: str,
    doc_type: str,
    db: AsyncSession = Depends(get_async_session),
) -> list[VersionSummary]:
    """Version history, newest first, including the current version."""
    history = await document_service.get_version_history(
        db, project_slug, _parse_type(doc_type),
    )
    if history is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return [VersionSummary(**h) for h in history]


@router.get("/{doc_type}/versions/{version}", response_model=VersionSnapshot)
async def get_document_version(
    project_slug: str,
    doc_type: str,
    version: int,
    db: AsyncSession = Depends(get_async_session),
) -> VersionSnapshot:
    """Get the content of a specific version."""
    snapshot = await document_service.get_version(
        db, project_slug, _parse_type(doc_type), version,
    )
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionSnapshot(**snapshot)

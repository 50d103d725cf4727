"""Service layer for project document operations."""
from __future__ import annotations

from models.document import DocumentType, ProjectDocument
from models.project import Project
from schemas.document import DocumentCreate
from services.versioned_entity_service import VersionedEntityService


class DocumentService(VersionedEntityService[ProjectDocument]):
    """
    Project document operations.

    A project holds at most one document per DocumentType. Only `content` is
    versioned; `title` and `tags` are updated in place.
    """

    model = ProjectDocument
    entity_name = "document"
    key_field = "type"
    versioned_fields = ("content",)
    snapshot_fields = ("content",)

    def _key_of(self, data: DocumentCreate) -> str:
        return DocumentType(data.type).value

    def _build_entity(self, project: Project, data: DocumentCreate) -> ProjectDocument:
        return ProjectDocument(
            project_id=project.id,
            type=DocumentType(data.type).value,
            title=data.title,
            content=data.content,
            tags=list(data.tags),
        )


document_service = DocumentService()

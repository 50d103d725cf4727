"""Pydantic schemas for catalog browsing and project initialization."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from models.document import DocumentType
from schemas.project import ContentCounts
from schemas.validators import validate_and_normalize_tags, validate_slug


class CatalogProject(BaseModel):
    """A template project as shown in the catalog."""

    slug: str
    name: str
    description: str
    tags: list[str]
    category: str
    counts: ContentCounts
    updated_at: datetime


class CatalogResponse(BaseModel):
    """Template projects plus the number of templates in each category."""

    projects: list[CatalogProject]
    total: int
    categories: dict[str, int]


class CatalogSkill(BaseModel):
    """A skill offered by one or more template projects."""

    name: str
    type: str
    description: str
    category: str
    tags: list[str]
    projects: list[str] = Field(description="Slugs of template projects that define this skill")


class SkillCatalogResponse(BaseModel):
    """Unique skills across templates, with category and type counts."""

    skills: list[CatalogSkill]
    total: int
    categories: dict[str, int]
    types: dict[str, int]


class SkillContentResponse(BaseModel):
    """Full content of a skill found in the catalog."""

    name: str
    project_slug: str
    type: str
    description: str
    content: str
    tags: list[str]
    current_version: int


class TechstackContentResponse(BaseModel):
    """Techstack document (and coding guidelines when present) of a project."""

    project_slug: str
    project_name: str
    techstack: str
    coding_guidelines: str | None = None


class InitFromTechstackRequest(BaseModel):
    """Create a user project seeded from a template project's documents."""

    slug: str = Field(max_length=100)
    name: str = Field(min_length=1, max_length=200)
    source_slug: str
    description: str | None = None
    tags: list[str] | None = None
    copy_documents: list[DocumentType] = Field(
        default_factory=lambda: [DocumentType.TECHSTACK],
    )
    copy_skills: bool = False
    username: str | None = Field(default=None, max_length=100)

    @field_validator("slug")
    @classmethod
    def check_slug_format(cls, v: str) -> str:
        """Lowercase and validate slug."""
        return validate_slug(v)

    @field_validator("copy_documents", mode="before")
    @classmethod
    def uppercase_types(cls, v: list[str]) -> list[str]:
        """Accept document types case-insensitively."""
        if v is None:
            return [DocumentType.TECHSTACK.value]
        return [t.upper() if isinstance(t, str) else t for t in v]

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)


class InitFromTechstackResponse(BaseModel):
    """Result of initializing a project from a template."""

    slug: str
    name: str
    source_slug: str
    copied_documents: list[str]
    copied_skills: list[str]


class TechstackSummary(BaseModel):
    """A project that defines a TECHSTACK document."""

    project_slug: str
    project_name: str
    project_description: str
    project_tags: list[str]
    is_template: bool
    preview: str | None = Field(
        default=None, description="First 500 characters, when not browsing in detail",
    )
    content: str | None = Field(default=None, description="Full document, when detailed")
    current_version: int
    updated_at: datetime


class TechstackBrowseResponse(BaseModel):
    """Projects with a TECHSTACK document, ordered by slug."""

    techstacks: list[TechstackSummary]
    total: int


class CustomDocumentFile(BaseModel):
    """An explicit file-to-document-type mapping for project import."""

    type: DocumentType
    file_path: str = Field(min_length=1, description="Path relative to the project directory")

    @field_validator("type", mode="before")
    @classmethod
    def uppercase_type(cls, v: str) -> str:
        """Accept document types case-insensitively."""
        return v.upper() if isinstance(v, str) else v


class InitExistingProjectRequest(BaseModel):
    """Register a local project directory, importing its documentation files."""

    slug: str = Field(max_length=100)
    name: str = Field(min_length=1, max_length=200)
    directory: str = Field(min_length=1)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    scan_for_docs: bool = True
    custom_docs: list[CustomDocumentFile] = Field(default_factory=list)
    username: str | None = Field(default=None, max_length=100)

    @field_validator("slug")
    @classmethod
    def check_slug_format(cls, v: str) -> str:
        """Lowercase and validate slug."""
        return validate_slug(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class ImportedDocument(BaseModel):
    """A document created from a file in the project directory."""

    type: DocumentType
    file: str


class InitExistingProjectResponse(BaseModel):
    """Result of importing an existing project directory."""

    slug: str
    name: str
    imported: list[ImportedDocument]
    missing: list[DocumentType] = Field(
        description="Document types scanned for but not found",
    )

"""
Catalog of template projects.

Template projects (is_template=True) act as a library of techstacks and
skills. The catalog lets callers browse them by derived category and seed a
new user project from one. Existing projects on disk can be registered by
importing their documentation files (PLAN.md, TODO.md, TECHSTACK.md, ...).
"""
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.document import DocumentType, ProjectDocument
from models.project import Project
from models.skill import Skill
from schemas.catalog import InitExistingProjectRequest, InitFromTechstackRequest
from schemas.document import DocumentCreate
from schemas.project import ProjectCreate
from schemas.skill import SkillCreate
from services.document_service import document_service
from services.exceptions import SlugConflictError
from services.project_service import project_service
from services.skill_service import skill_service
from services.utils import tags_match_any

logger = logging.getLogger(__name__)

PROJECT_CATEGORIES = ("mobile", "fullstack", "backend", "frontend", "database", "devops", "other")
SKILL_CATEGORIES = ("testing", "security", "database", "devops", "frontend", "backend", "general")

# First matching rule wins
_PROJECT_CATEGORY_RULES: list[tuple[str, set[str]]] = [
    ("mobile", {"mobile", "react-native"}),
    ("fullstack", {"fullstack", "mern", "mean"}),
    ("backend", {"backend", "api"}),
    ("frontend", {"frontend", "spa"}),
    ("database", {"database", "orm", "sql", "nosql"}),
    ("devops", {"devops", "deployment", "cicd"}),
]

_SKILL_CATEGORY_RULES: list[tuple[str, set[str], tuple[str, ...]]] = [
    ("testing", {"testing", "test"}, ("test",)),
    ("security", {"security", "auth"}, ("security", "auth")),
    ("database", {"database", "orm", "sql", "prisma", "drizzle", "mongoose"}, ()),
    ("devops", {"devops", "docker", "deployment", "logging", "monitoring"}, ()),
    ("frontend", {"react", "vue", "frontend", "css", "tailwind", "state"}, ()),
    ("backend", {"api", "backend", "express", "validation"}, ()),
]


def categorize_project(tags: list[str]) -> str:
    """Derive a catalog category from project tags."""
    tag_set = {t.lower() for t in tags}
    for category, markers in _PROJECT_CATEGORY_RULES:
        if tag_set & markers:
            return category
    return "other"


def categorize_skill(tags: list[str], name: str) -> str:
    """Derive a skill category from its tags, falling back to words in its name."""
    tag_set = {t.lower() for t in tags}
    name_lower = name.lower()
    for category, markers, name_words in _SKILL_CATEGORY_RULES:
        if tag_set & markers or any(word in name_lower for word in name_words):
            return category
    return "general"


TECHSTACK_PREVIEW_LENGTH = 500

# Files tried in order for each document type when importing a project directory
DOC_FILE_MAPPING: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.PLAN: ("PLAN.md", "plan.md", "ROADMAP.md", "roadmap.md"),
    DocumentType.TODO: ("TODO.md", "todo.md", "TASKS.md", "tasks.md"),
    DocumentType.SCOPE: ("SCOPE.md", "scope.md", "REQUIREMENTS.md", "requirements.md", "PRD.md"),
    DocumentType.TECHSTACK: (
        "TECHSTACK.md", "techstack.md", "TECH.md", "STACK.md", "ARCHITECTURE.md",
    ),
    DocumentType.CODING_GUIDELINES: (
        "CODING_GUIDELINES.md",
        "CONTRIBUTING.md",
        "CODE_STYLE.md",
        "STYLE_GUIDE.md",
        ".github/CONTRIBUTING.md",
    ),
    DocumentType.UI_UX_STANDARDS: ("UI_UX_STANDARDS.md", "DESIGN.md", "STYLE.md", "UI.md"),
}
PACKAGE_JSON_SOURCE = "package.json (generated)"


def _matches(search: str | None, *fields: str, tags: list[str]) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in f.lower() for f in fields) or any(needle in t.lower() for t in tags)


def techstack_preview(content: str) -> str:
    """First TECHSTACK_PREVIEW_LENGTH characters, with "..." when truncated."""
    if len(content) <= TECHSTACK_PREVIEW_LENGTH:
        return content
    return content[:TECHSTACK_PREVIEW_LENGTH] + "..."


def read_document_file(path: Path) -> str | None:
    """Text of a documentation file; None when it is missing, blank or not UTF-8."""
    if not path.is_file():
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping %s: not UTF-8 text", path)
        return None
    return content if content.strip() else None


def resolve_inside(directory: Path, relative_path: str) -> Path:
    """
    Resolve a path given relative to `directory`.

    Raises:
        ValueError: If the path resolves outside the directory.
    """
    path = (directory / relative_path).resolve()
    if not path.is_relative_to(directory):
        raise ValueError(f"'{relative_path}' is outside the project directory")
    return path


def techstack_from_package_json(path: Path) -> str | None:
    """Markdown techstack listing a package.json's dependencies; None if unusable."""
    text = read_document_file(path)
    if text is None:
        return None
    try:
        package = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Skipping %s: invalid JSON", path)
        return None
    if not isinstance(package, dict):
        return None

    lines = ["# Tech Stack", "", "Generated from package.json", ""]
    if package.get("name"):
        lines += [f"## Project: {package['name']}", ""]
    if package.get("description"):
        lines += [str(package["description"]), ""]
    lines += ["## Dependencies", ""]
    dependencies = package.get("dependencies") or {}
    dev_dependencies = package.get("devDependencies") or {}
    lines += [f"- {name}: {version}" for name, version in dependencies.items()]
    if dev_dependencies:
        lines += ["", "## Dev Dependencies", ""]
        lines += [f"- {name}: {version}" for name, version in dev_dependencies.items()]
    return "\n".join(lines) + "\n"


class CatalogService:
    """Browse template projects and skills; initialize projects from templates."""

    async def browse_catalog(
        self,
        db: AsyncSession,
        category: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        """
        Template projects with counts and derived categories, sorted by name.

        Category counts are computed over all templates before filtering.
        """
        items = await project_service.list_with_counts(db, is_template=True, limit=10_000)
        projects = [
            {
                "slug": item.slug,
                "name": item.name,
                "description": item.description,
                "tags": item.tags,
                "category": categorize_project(item.tags),
                "counts": item.counts,
                "updated_at": item.updated_at,
            }
            for item in items
        ]
        categories = Counter(p["category"] for p in projects)

        if category and category != "all":
            projects = [p for p in projects if p["category"] == category]
        projects = [
            p for p in projects
            if _matches(search, p["name"], p["description"], tags=p["tags"])
        ]
        projects.sort(key=lambda p: p["name"].lower())
        return {
            "projects": projects,
            "total": len(projects),
            "categories": dict(categories.most_common()),
        }

    async def browse_skills(
        self,
        db: AsyncSession,
        category: str | None = None,
        skill_type: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        """Unique skills (by name) across template projects, sorted by name."""
        result = await db.execute(
            select(Skill, Project.slug)
            .join(Project, Project.id == Skill.project_id)
            .where(Project.is_template.is_(True))
            .order_by(Project.slug, Skill.name),
        )
        by_name: dict[str, dict[str, Any]] = {}
        for skill, slug in result.all():
            entry = by_name.get(skill.name)
            if entry is None:
                by_name[skill.name] = {
                    "name": skill.name,
                    "type": skill.type,
                    "description": skill.description or "",
                    "category": categorize_skill(skill.tags or [], skill.name),
                    "tags": list(skill.tags or []),
                    "projects": [slug],
                }
            else:
                entry["projects"].append(slug)

        all_skills = list(by_name.values())
        categories = Counter(s["category"] for s in all_skills)
        types = Counter(s["type"] for s in all_skills)

        skills = all_skills
        if category and category != "all":
            skills = [s for s in skills if s["category"] == category]
        if skill_type and skill_type != "all":
            skills = [s for s in skills if s["type"] == skill_type]
        skills = [s for s in skills if _matches(search, s["name"], s["description"], tags=s["tags"])]
        skills.sort(key=lambda s: s["name"])
        return {
            "skills": skills,
            "total": len(skills),
            "categories": dict(categories.most_common()),
            "types": dict(types.most_common()),
        }

    async def get_skill_content(
        self,
        db: AsyncSession,
        skill_name: str,
        project_slug: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Full content of a skill.

        Without a project_slug the first project owning the skill is used,
        templates before user projects, then by slug.
        """
        if project_slug:
            skill = await skill_service.get(db, project_slug, skill_name)
            slug = project_slug.strip().lower()
        else:
            result = await db.execute(
                select(Skill, Project.slug)
                .join(Project, Project.id == Skill.project_id)
                .where(Skill.name == skill_name)
                .order_by(Project.is_template.desc(), Project.slug)
                .limit(1),
            )
            row = result.first()
            skill, slug = (row[0], row[1]) if row else (None, None)
        if skill is None:
            return None
        return {
            "name": skill.name,
            "project_slug": slug,
            "type": skill.type,
            "description": skill.description or "",
            "content": skill.content,
            "tags": list(skill.tags or []),
            "current_version": skill.current_version,
        }

    async def get_techstack_content(
        self,
        db: AsyncSession,
        project_slug: str,
    ) -> dict[str, Any] | None:
        """TECHSTACK document plus CODING_GUIDELINES when present; None if no techstack."""
        project = await project_service.get_by_slug(db, project_slug)
        if project is None:
            return None
        techstack = await document_service.get(db, project.slug, DocumentType.TECHSTACK.value)
        if techstack is None:
            return None
        guidelines = await document_service.get(
            db, project.slug, DocumentType.CODING_GUIDELINES.value,
        )
        return {
            "project_slug": project.slug,
            "project_name": project.name,
            "techstack": techstack.content,
            "coding_guidelines": guidelines.content if guidelines else None,
        }

    async def init_from_techstack(
        self,
        db: AsyncSession,
        data: InitFromTechstackRequest,
    ) -> dict[str, Any] | None:
        """
        Create a user project seeded from a source project's documents and skills.

        Returns:
            Summary of what was copied, or None if the source project does not exist.

        Raises:
            SlugConflictError: If the new slug is already taken.
        """
        source = await project_service.get_by_slug(db, data.source_slug)
        if source is None:
            return None
        if await project_service.exists(db, data.slug):
            raise SlugConflictError(data.slug)

        project = await project_service.create(db, ProjectCreate(
            slug=data.slug,
            name=data.name,
            description=data.description or f"Initialized from {source.name}",
            tags=data.tags if data.tags is not None else list(source.tags or []),
            is_template=False,
            username=data.username,
        ))

        copied_documents: list[str] = []
        for doc_type in data.copy_documents:
            source_doc: ProjectDocument | None = await document_service.get(
                db, source.slug, DocumentType(doc_type).value,
            )
            if source_doc is None:
                continue
            await document_service.create(db, project.slug, DocumentCreate(
                type=source_doc.type,
                title=source_doc.title,
                content=source_doc.content,
                tags=list(source_doc.tags or []),
                username=data.username,
            ))
            copied_documents.append(source_doc.type)
            logger.info("Copied from %s: document %s", source.slug, source_doc.type)

        copied_skills: list[str] = []
        if data.copy_skills:
            for skill in await skill_service.list(db, source.slug):
                await skill_service.create(db, project.slug, SkillCreate(
                    name=skill.name,
                    type=skill.type,
                    description=skill.description,
                    content=skill.content,
                    tags=list(skill.tags or []),
                    is_active=skill.is_active,
                    username=data.username,
                ))
                copied_skills.append(skill.name)
            logger.info("Copied from %s: %s skills", source.slug, len(copied_skills))

        return {
            "slug": project.slug,
            "name": project.name,
            "source_slug": source.slug,
            "copied_documents": copied_documents,
            "copied_skills": copied_skills,
        }

    async def browse_techstacks(
        self,
        db: AsyncSession,
        tags: list[str] | None = None,
        detailed: bool = False,
    ) -> dict[str, Any]:
        """
        Projects (templates and user projects) that define a TECHSTACK document.

        Args:
            tags: Keep projects carrying any of these tags.
            detailed: Return the full document instead of a 500-character preview.
        """
        query = (
            select(ProjectDocument, Project)
            .join(Project, Project.id == ProjectDocument.project_id)
            .where(ProjectDocument.type == DocumentType.TECHSTACK.value)
            .order_by(Project.slug)
        )
        tag_filter = tags_match_any(Project.tags, tags)
        if tag_filter is not None:
            query = query.where(tag_filter)

        result = await db.execute(query)
        techstacks = [
            {
                "project_slug": project.slug,
                "project_name": project.name,
                "project_description": project.description,
                "project_tags": list(project.tags or []),
                "is_template": project.is_template,
                "preview": None if detailed else techstack_preview(document.content),
                "content": document.content if detailed else None,
                "current_version": document.current_version,
                "updated_at": document.updated_at,
            }
            for document, project in result.all()
        ]
        return {"techstacks": techstacks, "total": len(techstacks)}

    async def _import_document(
        self,
        db: AsyncSession,
        project_slug: str,
        doc_type: DocumentType,
        content: str,
        username: str | None,
    ) -> None:
        await document_service.create(db, project_slug, DocumentCreate(
            type=doc_type,
            title=doc_type.value,
            content=content,
            username=username,
        ))

    async def init_existing_project(
        self,
        db: AsyncSession,
        data: InitExistingProjectRequest,
    ) -> dict[str, Any]:
        """
        Register a project directory on disk as a user project.

        Explicit `custom_docs` mappings are imported first. With `scan_for_docs`,
        each remaining document type is filled from the first non-blank file in
        DOC_FILE_MAPPING. Without a TECHSTACK file, a package.json in the
        directory is turned into a generated dependency listing.

        Returns:
            Summary with the imported (type, file) pairs and the types not found.

        Raises:
            ValueError: If the directory does not exist or a custom path leaves it.
            SlugConflictError: If the slug is already taken.
        """
        directory = Path(data.directory).expanduser().resolve()
        if not directory.is_dir():
            raise ValueError(f"Project directory '{data.directory}' does not exist")
        custom_paths = [
            (custom.type, custom.file_path, resolve_inside(directory, custom.file_path))
            for custom in data.custom_docs
        ]
        if await project_service.exists(db, data.slug):
            raise SlugConflictError(data.slug)

        project = await project_service.create(db, ProjectCreate(
            slug=data.slug,
            name=data.name,
            description=data.description,
            tags=data.tags,
            metadata={"source_directory": str(directory)},
            is_template=False,
            username=data.username,
        ))

        imported: dict[DocumentType, str] = {}
        for doc_type, file_path, path in custom_paths:
            if doc_type in imported:
                continue
            content = read_document_file(path)
            if content is not None:
                await self._import_document(db, project.slug, doc_type, content, data.username)
                imported[doc_type] = file_path

        missing: list[DocumentType] = []
        if data.scan_for_docs:
            for doc_type, file_names in DOC_FILE_MAPPING.items():
                if doc_type in imported:
                    continue
                for file_name in file_names:
                    content = read_document_file(directory / file_name)
                    if content is not None:
                        await self._import_document(
                            db, project.slug, doc_type, content, data.username,
                        )
                        imported[doc_type] = file_name
                        break
                else:
                    missing.append(doc_type)

        if DocumentType.TECHSTACK not in imported:
            generated = techstack_from_package_json(directory / "package.json")
            if generated is not None:
                await self._import_document(
                    db, project.slug, DocumentType.TECHSTACK, generated, data.username,
                )
                imported[DocumentType.TECHSTACK] = PACKAGE_JSON_SOURCE
                if DocumentType.TECHSTACK in missing:
                    missing.remove(DocumentType.TECHSTACK)

        logger.info(
            "Imported %s from %s: %s documents", project.slug, directory, len(imported),
        )
        return {
            "slug": project.slug,
            "name": project.name,
            "imported": [{"type": t, "file": f} for t, f in imported.items()],
            "missing": missing,
        }


catalog_service = CatalogService()

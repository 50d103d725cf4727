"""FastMCP server exposing project context tools."""
import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Annotated, Any, Literal
from uuid import UUID

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session_factory
from models.document import DocumentType
from schemas.catalog import (
    CustomDocumentFile,
    InitExistingProjectRequest,
    InitExistingProjectResponse,
    InitFromTechstackRequest,
    TechstackBrowseResponse,
)
from schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate
from schemas.project import ProjectContextResponse
from schemas.prompt_template import PromptTemplateResponse
from schemas.skill import SkillResponse
from schemas.snippet import SnippetResponse
from schemas.todo import QuestionAnswerCreate, TodoCreate, TodoResponse, TodoUpdate
from services.catalog_service import catalog_service
from services.document_service import document_service
from services.exceptions import (
    ConflictError,
    InvalidVersionError,
    TemplateError,
    TodoHierarchyError,
)
from services.project_service import project_service
from services.prompt_template_service import prompt_template_service
from services.search_service import search_service
from services.skill_service import skill_service
from services.snippet_service import snippet_service
from services.todo_service import todo_service

logger = logging.getLogger(__name__)

DocumentTypeName = Literal[
    "PLAN", "TODO", "SCOPE", "TECHSTACK", "UI_UX_STANDARDS", "CODING_GUIDELINES",
]
TodoStatusName = Literal["pending", "in_progress", "completed", "cancelled"]
TodoPriorityName = Literal["low", "medium", "high", "critical"]
SearchTypeName = Literal["document", "skill", "snippet", "prompt"]

mcp = FastMCP(
    name="Context Manager MCP Server",
    instructions="""
A project context store for coding assistants. Each project holds documents
(PLAN, TODO, SCOPE, TECHSTACK, UI_UX_STANDARDS, CODING_GUIDELINES), reusable
skills, code snippets, prompt templates and todos. Content keeps a version history.

Typical workflows:

1. "What am I working on?"
   - Call `list_projects()` then `get_project_context(project_slug=...)`

2. "Find how we handle authentication"
   - Call `search_content(query="authentication")`

3. "Start a new project like the FastAPI template"
   - Call `browse_catalog(search="fastapi")`, then
     `init_project_from_techstack(new_project_slug=..., source_project_slug=...)`
   - Or compare stacks across all projects with `browse_techstacks()`
   - Register a project already on disk with `init_existing_project(...)`

4. Track work with `list_todos`, `create_todo`, `update_todo` and `add_todo_qa`.

Project slugs are lowercase with hyphens (e.g., `my-app`).
""".strip(),
)


@asynccontextmanager
async def _session() -> AsyncGenerator[AsyncSession]:
    """One unit of work per tool call: commit on success, roll back on error."""
    async with get_session_factory()() as db:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise


@contextmanager
def _tool_errors() -> Iterator[None]:
    """Translate service exceptions into ToolErrors."""
    try:
        yield
    except ToolError:
        raise
    except (
        ConflictError,
        TemplateError,
        TodoHierarchyError,
        InvalidVersionError,
        ValueError,
    ) as e:
        raise ToolError(str(e))
    except Exception as e:
        logger.exception("Tool call failed")
        raise ToolError("Internal error while processing the request") from e


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json")


def _parse_todo_id(todo_id: str) -> UUID:
    try:
        return UUID(todo_id)
    except ValueError:
        raise ToolError(f"Invalid todo id: {todo_id}")


# --- Projects ---

@mcp.tool(
    description="List projects with document, skill, snippet and prompt counts.",
    annotations={"readOnlyHint": True},
)
async def list_projects(
    tags: Annotated[list[str] | None, Field(description="Match projects with any of these tags")] = None,
    is_template: Annotated[
        bool | None,
        Field(description="True for catalog templates, False for user projects, omit for both"),
    ] = None,
    limit: Annotated[int, Field(ge=1, le=100, description="Maximum results to return")] = 50,
    offset: Annotated[int, Field(ge=0, description="Number of results to skip")] = 0,
) -> dict[str, Any]:
    """List projects, most recently updated first."""
    with _tool_errors():
        async with _session() as db:
            items = await project_service.list_with_counts(db, tags, is_template, limit, offset)
            total = await project_service.count(db, tags, is_template)
    return {"projects": [_dump(i) for i in items], "total": total}


@mcp.tool(
    description=(
        "Get a project with its documents and active skills. "
        "Snippets and prompt templates are included on request."
    ),
    annotations={"readOnlyHint": True},
)
async def get_project_context(
    project_slug: Annotated[str, Field(description="Project slug")],
    include_documents: Annotated[bool, Field(description="Include documents")] = True,
    include_skills: Annotated[bool, Field(description="Include active skills")] = True,
    include_snippets: Annotated[bool, Field(description="Include code snippets")] = False,
    include_prompts: Annotated[bool, Field(description="Include prompt templates")] = False,
) -> dict[str, Any]:
    """Assemble a project's working context."""
    with _tool_errors():
        async with _session() as db:
            context = await project_service.get_context(
                db, project_slug, include_documents, include_skills,
                include_snippets, include_prompts,
            )
            if context is None:
                raise ToolError(f"Project '{project_slug}' not found")
            response = ProjectContextResponse.model_validate(context, from_attributes=True)
    return response.model_dump(mode="json", exclude_none=True)


# --- Documents ---

@mcp.tool(
    description="Get a project document by type, optionally at a past version.",
    annotations={"readOnlyHint": True},
)
async def get_document(
    project_slug: Annotated[str, Field(description="Project slug")],
    doc_type: Annotated[DocumentTypeName, Field(description="Document type")],
    version: Annotated[
        int | None, Field(ge=1, description="Version number; omit for the current version"),
    ] = None,
) -> dict[str, Any]:
    """Get a document, or one of its versions."""
    with _tool_errors():
        async with _session() as db:
            if version is not None:
                snapshot = await document_service.get_version(db, project_slug, doc_type, version)
                if snapshot is None:
                    raise ToolError(f"Version {version} of {doc_type} not found in '{project_slug}'")
                return {**snapshot, "changed_at": snapshot["changed_at"].isoformat()}
            document = await document_service.get(db, project_slug, doc_type)
            if document is None:
                raise ToolError(f"Document {doc_type} not found in '{project_slug}'")
            return _dump(DocumentResponse.model_validate(document))


@mcp.tool(description="Add a document to a project. Each project holds one document per type.")
async def add_document(
    project_slug: Annotated[str, Field(description="Project slug")],
    doc_type: Annotated[DocumentTypeName, Field(description="Document type")],
    title: Annotated[str, Field(description="Document title")],
    content: Annotated[str, Field(description="Markdown content")],
    tags: Annotated[list[str] | None, Field(description="Tags")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Create a document."""
    with _tool_errors():
        data = DocumentCreate(
            type=DocumentType(doc_type), title=title, content=content,
            tags=tags or [], username=username,
        )
        async with _session() as db:
            document = await document_service.create(db, project_slug, data)
            if document is None:
                raise ToolError(f"Project '{project_slug}' not found")
            return _dump(DocumentResponse.model_validate(document))


@mcp.tool(
    description=(
        "Update a project document. Changing content creates a new version; "
        "change_note records why the previous version was replaced."
    ),
)
async def update_document(
    project_slug: Annotated[str, Field(description="Project slug")],
    doc_type: Annotated[DocumentTypeName, Field(description="Document type")],
    content: Annotated[str | None, Field(description="New content")] = None,
    title: Annotated[str | None, Field(description="New title")] = None,
    tags: Annotated[list[str] | None, Field(description="Replacement tags")] = None,
    change_note: Annotated[str | None, Field(description="Why the content changed")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
    expected_version: Annotated[
        int | None, Field(description="Reject the update if the current version differs"),
    ] = None,
) -> dict[str, Any]:
    """Update a document."""
    with _tool_errors():
        data = DocumentUpdate(
            title=title, content=content, tags=tags, change_note=change_note,
            username=username, expected_version=expected_version,
        )
        async with _session() as db:
            document = await document_service.update(db, project_slug, doc_type, data)
            if document is None:
                raise ToolError(f"Document {doc_type} not found in '{project_slug}'")
            return _dump(DocumentResponse.model_validate(document))


# --- Skills, snippets and prompts ---

@mcp.tool(description="List a project's skills.", annotations={"readOnlyHint": True})
async def get_skills(
    project_slug: Annotated[str, Field(description="Project slug")],
    skill_type: Annotated[
        Literal["instructions", "code_template", "tool_definition"] | None,
        Field(description="Filter by skill type"),
    ] = None,
    tags: Annotated[list[str] | None, Field(description="Match any of these tags")] = None,
    active_only: Annotated[bool, Field(description="Only active skills")] = True,
) -> dict[str, Any]:
    """List skills ordered by name."""
    with _tool_errors():
        async with _session() as db:
            skills = await skill_service.list(
                db, project_slug, tags, skill_type=skill_type, active_only=active_only,
            )
    return {"skills": [_dump(SkillResponse.model_validate(s)) for s in skills]}


@mcp.tool(description="List a project's code snippets.", annotations={"readOnlyHint": True})
async def get_code_snippets(
    project_slug: Annotated[str, Field(description="Project slug")],
    language: Annotated[str | None, Field(description="Filter by language")] = None,
    tags: Annotated[list[str] | None, Field(description="Match any of these tags")] = None,
) -> dict[str, Any]:
    """List snippets ordered by name."""
    with _tool_errors():
        async with _session() as db:
            snippets = await snippet_service.list(db, project_slug, tags, language=language)
    return {"snippets": [_dump(SnippetResponse.model_validate(s)) for s in snippets]}


@mcp.tool(
    description="Get a prompt template with its variable definitions.",
    annotations={"readOnlyHint": True},
)
async def get_prompt_template(
    project_slug: Annotated[str, Field(description="Project slug")],
    name: Annotated[str, Field(description="Prompt template name")],
) -> dict[str, Any]:
    """Get a prompt template by name."""
    with _tool_errors():
        async with _session() as db:
            template = await prompt_template_service.get(db, project_slug, name)
            if template is None:
                raise ToolError(f"Prompt template '{name}' not found in '{project_slug}'")
            return _dump(PromptTemplateResponse.model_validate(template))


@mcp.tool(
    description=(
        "Render a prompt template with variable values. Declared defaults fill "
        "omitted variables; missing required variables are an error."
    ),
    annotations={"readOnlyHint": True},
)
async def render_prompt_template(
    project_slug: Annotated[str, Field(description="Project slug")],
    name: Annotated[str, Field(description="Prompt template name")],
    variables: Annotated[
        dict[str, Any] | None, Field(description="Variable values keyed by name"),
    ] = None,
) -> dict[str, Any]:
    """Render a prompt template."""
    with _tool_errors():
        async with _session() as db:
            rendered = await prompt_template_service.render(db, project_slug, name, variables)
    if rendered is None:
        raise ToolError(f"Prompt template '{name}' not found in '{project_slug}'")
    return {"rendered_content": rendered}


@mcp.tool(
    description=(
        "Search documents, skills, snippets and prompt templates across projects. "
        "Results are ranked together and paginated."
    ),
    annotations={"readOnlyHint": True},
)
async def search_content(
    query: Annotated[str, Field(min_length=1, description="Search text")],
    project_slug: Annotated[str | None, Field(description="Restrict to one project")] = None,
    types: Annotated[
        list[SearchTypeName] | None, Field(description="Collections to search (default all)"),
    ] = None,
    tags: Annotated[list[str] | None, Field(description="Match any of these tags")] = None,
    limit: Annotated[int, Field(ge=1, le=100, description="Maximum results to return")] = 20,
    offset: Annotated[int, Field(ge=0, description="Number of results to skip")] = 0,
) -> dict[str, Any]:
    """Federated search."""
    with _tool_errors():
        async with _session() as db:
            result = await search_service.search(
                db, query, project_slug, types, tags, limit, offset,
            )
    for hit in result["results"]:
        hit["type"] = str(hit["type"])
        hit["updated_at"] = hit["updated_at"].isoformat()
    return result


# --- Todos ---

@mcp.tool(
    description=(
        "List a project's todos, highest priority first. Completed and cancelled "
        "todos are hidden unless a status filter or include_completed is given."
    ),
    annotations={"readOnlyHint": True},
)
async def list_todos(
    project_slug: Annotated[str, Field(description="Project slug")],
    status: Annotated[list[TodoStatusName] | None, Field(description="Status filter")] = None,
    priority: Annotated[
        list[TodoPriorityName] | None, Field(description="Priority filter"),
    ] = None,
    tags: Annotated[list[str] | None, Field(description="Match any of these tags")] = None,
    include_completed: Annotated[bool, Field(description="Include closed todos")] = False,
) -> dict[str, Any]:
    """List todos."""
    with _tool_errors():
        async with _session() as db:
            todos = await todo_service.list(
                db, project_slug, status=status, priority=priority, tags=tags,
                include_completed=include_completed,
            )
    return {"todos": [_dump(TodoResponse.model_validate(t)) for t in todos]}


@mcp.tool(description="Get a todo by id.", annotations={"readOnlyHint": True})
async def get_todo(
    todo_id: Annotated[str, Field(description="Todo id (UUID)")],
) -> dict[str, Any]:
    """Get a todo."""
    with _tool_errors():
        async with _session() as db:
            todo = await todo_service.get(db, _parse_todo_id(todo_id))
            if todo is None:
                raise ToolError(f"Todo {todo_id} not found")
            return _dump(TodoResponse.model_validate(todo))


@mcp.tool(description="Create a todo in a project.")
async def create_todo(
    project_slug: Annotated[str, Field(description="Project slug")],
    title: Annotated[str, Field(description="Todo title")],
    description: Annotated[str, Field(description="Details")] = "",
    priority: Annotated[TodoPriorityName, Field(description="Priority")] = "medium",
    tags: Annotated[list[str] | None, Field(description="Tags")] = None,
    parent_id: Annotated[str | None, Field(description="Parent todo id for subtasks")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Create a todo."""
    with _tool_errors():
        data = TodoCreate(
            title=title, description=description, priority=priority, tags=tags or [],
            parent_id=_parse_todo_id(parent_id) if parent_id else None, username=username,
        )
        async with _session() as db:
            todo = await todo_service.create(db, project_slug, data)
            if todo is None:
                raise ToolError(f"Project '{project_slug}' not found")
            return _dump(TodoResponse.model_validate(todo))


@mcp.tool(
    description=(
        "Update a todo. Changing title, description or status creates a new version; "
        "completing a todo stamps completed_at."
    ),
)
async def update_todo(
    todo_id: Annotated[str, Field(description="Todo id (UUID)")],
    title: Annotated[str | None, Field(description="New title")] = None,
    description: Annotated[str | None, Field(description="New description")] = None,
    status: Annotated[TodoStatusName | None, Field(description="New status")] = None,
    priority: Annotated[TodoPriorityName | None, Field(description="New priority")] = None,
    tags: Annotated[list[str] | None, Field(description="Replacement tags")] = None,
    change_note: Annotated[str | None, Field(description="Why it changed")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Update a todo."""
    with _tool_errors():
        data = TodoUpdate(
            title=title, description=description, status=status, priority=priority,
            tags=tags, change_note=change_note, username=username,
        )
        async with _session() as db:
            todo = await todo_service.update(db, _parse_todo_id(todo_id), data)
            if todo is None:
                raise ToolError(f"Todo {todo_id} not found")
            return _dump(TodoResponse.model_validate(todo))


@mcp.tool(description="Record a clarifying question and its answer on a todo.")
async def add_todo_qa(
    todo_id: Annotated[str, Field(description="Todo id (UUID)")],
    question: Annotated[str, Field(min_length=1, description="Question")],
    answer: Annotated[str, Field(min_length=1, description="Answer")],
    context: Annotated[str | None, Field(description="Optional context")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Append a Q&A entry."""
    with _tool_errors():
        data = QuestionAnswerCreate(
            question=question, answer=answer, context=context, username=username,
        )
        async with _session() as db:
            todo = await todo_service.add_qa(db, _parse_todo_id(todo_id), data)
            if todo is None:
                raise ToolError(f"Todo {todo_id} not found")
            return _dump(TodoResponse.model_validate(todo))


@mcp.tool(
    description="Todo counts by status and priority for a project.",
    annotations={"readOnlyHint": True},
)
async def get_todo_stats(
    project_slug: Annotated[str, Field(description="Project slug")],
) -> dict[str, Any]:
    """Todo statistics."""
    with _tool_errors():
        async with _session() as db:
            stats = await todo_service.get_stats(db, project_slug)
    if stats is None:
        raise ToolError(f"Project '{project_slug}' not found")
    return stats


# --- Catalog ---

@mcp.tool(
    description=(
        "Browse template projects in the catalog by category "
        "(mobile, fullstack, backend, frontend, database, devops, other) or search term."
    ),
    annotations={"readOnlyHint": True},
)
async def browse_catalog(
    category: Annotated[
        Literal["all", "mobile", "fullstack", "backend", "frontend", "database", "devops", "other"],
        Field(description="Category filter"),
    ] = "all",
    search: Annotated[str | None, Field(description="Match name, description or tags")] = None,
) -> dict[str, Any]:
    """Browse template projects."""
    with _tool_errors():
        async with _session() as db:
            result = await catalog_service.browse_catalog(db, category, search)
    for project in result["projects"]:
        project["counts"] = _dump(project["counts"])
        project["updated_at"] = project["updated_at"].isoformat()
    return result


@mcp.tool(
    description="Browse the unique skills offered by template projects.",
    annotations={"readOnlyHint": True},
)
async def browse_all_skills(
    category: Annotated[
        Literal["all", "testing", "security", "database", "devops", "frontend", "backend", "general"],
        Field(description="Category filter"),
    ] = "all",
    skill_type: Annotated[
        Literal["all", "instructions", "code_template", "tool_definition"],
        Field(description="Skill type filter"),
    ] = "all",
    search: Annotated[str | None, Field(description="Match name, description or tags")] = None,
) -> dict[str, Any]:
    """Browse catalog skills."""
    with _tool_errors():
        async with _session() as db:
            return await catalog_service.browse_skills(db, category, skill_type, search)


@mcp.tool(
    description="Get the full content of a skill by name.",
    annotations={"readOnlyHint": True},
)
async def get_skill_content(
    skill_name: Annotated[str, Field(description="Skill name")],
    project_slug: Annotated[
        str | None, Field(description="Project to read from (default: first that has it)"),
    ] = None,
) -> dict[str, Any]:
    """Get skill content."""
    with _tool_errors():
        async with _session() as db:
            skill = await catalog_service.get_skill_content(db, skill_name, project_slug)
    if skill is None:
        raise ToolError(f"Skill '{skill_name}' not found")
    return skill


@mcp.tool(
    description="Get a project's TECHSTACK document and coding guidelines.",
    annotations={"readOnlyHint": True},
)
async def get_techstack_content(
    project_slug: Annotated[str, Field(description="Project slug")],
) -> dict[str, Any]:
    """Get techstack content."""
    with _tool_errors():
        async with _session() as db:
            content = await catalog_service.get_techstack_content(db, project_slug)
    if content is None:
        raise ToolError(f"No techstack found for '{project_slug}'")
    return content


@mcp.tool(
    description=(
        "Create a new project seeded from an existing project's documents "
        "(TECHSTACK by default) and optionally its skills."
    ),
)
async def init_project_from_techstack(
    new_project_slug: Annotated[str, Field(description="Slug for the new project")],
    new_project_name: Annotated[str, Field(description="Name for the new project")],
    source_project_slug: Annotated[str, Field(description="Project to copy from")],
    new_project_description: Annotated[str | None, Field(description="Description")] = None,
    copy_documents: Annotated[
        list[Literal["TECHSTACK", "CODING_GUIDELINES", "UI_UX_STANDARDS"]] | None,
        Field(description="Documents to copy"),
    ] = None,
    copy_skills: Annotated[bool, Field(description="Copy all skills")] = False,
    tags: Annotated[list[str] | None, Field(description="Tags (default: source tags)")] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Initialize a project from a techstack."""
    with _tool_errors():
        data = InitFromTechstackRequest(
            slug=new_project_slug,
            name=new_project_name,
            source_slug=source_project_slug,
            description=new_project_description,
            copy_documents=copy_documents,
            copy_skills=copy_skills,
            tags=tags,
            username=username,
        )
        async with _session() as db:
            result = await catalog_service.init_from_techstack(db, data)
    if result is None:
        raise ToolError(f"Source project '{source_project_slug}' not found")
    return result


@mcp.tool(
    description=(
        "Browse the techstacks of all projects that define one. Useful for picking "
        "a stack to start a new project from."
    ),
    annotations={"readOnlyHint": True},
)
async def browse_techstacks(
    tags: Annotated[list[str] | None, Field(description="Projects with any of these tags")] = None,
    detailed: Annotated[
        bool, Field(description="Full TECHSTACK content instead of a 500-character preview"),
    ] = False,
) -> dict[str, Any]:
    """Browse techstacks."""
    with _tool_errors():
        async with _session() as db:
            result = await catalog_service.browse_techstacks(db, tags, detailed)
    # Only one of preview/content is set per item
    return TechstackBrowseResponse(**result).model_dump(mode="json", exclude_none=True)


@mcp.tool(
    description=(
        "Register an existing project directory by importing its documentation files "
        "(PLAN.md, TODO.md, SCOPE.md, TECHSTACK.md, CONTRIBUTING.md, DESIGN.md and similar)."
    ),
)
async def init_existing_project(
    project_slug: Annotated[str, Field(description="Slug for the new project")],
    project_name: Annotated[str, Field(description="Display name")],
    project_path: Annotated[str, Field(description="Path to the project directory")],
    project_description: Annotated[str, Field(description="Description")] = "",
    tags: Annotated[list[str] | None, Field(description="Project tags")] = None,
    scan_for_docs: Annotated[
        bool, Field(description="Look for common documentation file names"),
    ] = True,
    custom_docs: Annotated[
        list[dict[str, str]] | None,
        Field(description='Explicit mappings, e.g. [{"type": "PLAN", "file_path": "docs/plan.md"}]'),
    ] = None,
    username: Annotated[str | None, Field(description="Author to record")] = None,
) -> dict[str, Any]:
    """Initialize a project from a local directory."""
    with _tool_errors():
        data = InitExistingProjectRequest(
            slug=project_slug,
            name=project_name,
            directory=project_path,
            description=project_description,
            tags=tags,
            scan_for_docs=scan_for_docs,
            custom_docs=[CustomDocumentFile.model_validate(doc) for doc in custom_docs or []],
            username=username,
        )
        async with _session() as db:
            result = await catalog_service.init_existing_project(db, data)
    return _dump(InitExistingProjectResponse(**result))

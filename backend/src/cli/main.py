"""
Command-line interface for the context manager.

Usage:
    context-man init my-app --name "My App" --tags python,fastapi
    context-man import my-app ~/code/my-app --doc PLAN=docs/roadmap.md
    context-man techstacks --tags api --detailed
    context-man add document my-app TECHSTACK --title "Stack" --file STACK.md
    context-man get document my-app TECHSTACK --version 2
    context-man search "authentication" --type document --type skill
    context-man todo add my-app "Write tests" --priority high
    context-man --json list projects
    context-man serve api
"""
import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID

import uvicorn
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cli.formatters import (
    format_record,
    format_search_results,
    format_table,
    format_todo_stats,
    to_json,
)
from core.config import get_settings
from db.session import create_tables, get_session_factory
from mcp_server.__main__ import main as run_mcp
from models.skill import SkillType
from models.todo import TodoPriority, TodoStatus
from schemas.catalog import (
    CustomDocumentFile,
    InitExistingProjectRequest,
    InitExistingProjectResponse,
    TechstackBrowseResponse,
)
from schemas.document import DocumentCreate, DocumentResponse
from schemas.project import ProjectCreate, ProjectResponse
from schemas.prompt_template import PromptTemplateCreate, PromptTemplateResponse
from schemas.search import SearchType
from schemas.skill import SkillCreate, SkillResponse
from schemas.snippet import SnippetCreate, SnippetResponse
from schemas.todo import TodoCreate, TodoResponse
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
from services.versioned_entity_service import VersionedEntityService

# Failures reported as "Error: ..." with exit code 1. ValueError covers pydantic validation.
EXPECTED_ERRORS = (
    ConflictError,
    TemplateError,
    TodoHierarchyError,
    InvalidVersionError,
    ValueError,
    OSError,
)

Handler = Callable[[AsyncSession, argparse.Namespace], Awaitable[int]]


@dataclass(frozen=True)
class EntityKind:
    """How the CLI addresses, displays and creates one kind of project content."""

    service: VersionedEntityService
    response: type[BaseModel]
    body_field: str
    columns: tuple[str, ...]


ENTITY_KINDS: dict[str, EntityKind] = {
    "document": EntityKind(
        service=document_service,
        response=DocumentResponse,
        body_field="content",
        columns=("type", "title", "current_version", "tags", "updated_at"),
    ),
    "skill": EntityKind(
        service=skill_service,
        response=SkillResponse,
        body_field="content",
        columns=("name", "type", "is_active", "current_version", "tags"),
    ),
    "snippet": EntityKind(
        service=snippet_service,
        response=SnippetResponse,
        body_field="code",
        columns=("name", "language", "current_version", "tags"),
    ),
    "prompt": EntityKind(
        service=prompt_template_service,
        response=PromptTemplateResponse,
        body_field="content",
        columns=("name", "category", "current_version", "tags"),
    ),
}

# `list` takes plural nouns
PLURALS = {"documents": "document", "skills": "skill", "snippets": "snippet", "prompts": "prompt"}

TODO_COLUMNS = ("id", "title", "status", "priority", "tags")


def _split_tags(value: str | None) -> list[str]:
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def _entity_key(kind: str, key: str) -> str:
    return key.upper() if kind == "document" else key


def _read_content(args: argparse.Namespace) -> str:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.content


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _emit(args: argparse.Namespace, data: Any, text: str) -> None:
    print(to_json(data) if args.json else text)


# --- Projects ---

async def cmd_init(db: AsyncSession, args: argparse.Namespace) -> int:
    """Create a project."""
    project = await project_service.create(db, ProjectCreate(
        slug=args.slug,
        name=args.name or args.slug,
        description=args.description,
        tags=_split_tags(args.tags),
        is_template=args.template,
        username=args.username,
    ))
    response = ProjectResponse.model_validate(project)
    _emit(args, response, f"Created project {response.slug}")
    return 0


async def cmd_list(db: AsyncSession, args: argparse.Namespace) -> int:
    """List projects, or one kind of content in a project."""
    if args.kind == "projects":
        is_template = True if args.templates else None
        items = await project_service.list_with_counts(
            db, _split_tags(args.tags) or None, is_template, args.limit, 0,
        )
        rows = [
            {
                "slug": item.slug,
                "name": item.name,
                "docs": item.counts.documents,
                "skills": item.counts.skills,
                "snippets": item.counts.snippets,
                "prompts": item.counts.prompts,
                "todos": f"{item.todos.completed}/{item.todos.total}" if item.todos else None,
                "tags": item.tags,
            }
            for item in items
        ]
        columns = ("slug", "name", "docs", "skills", "snippets", "prompts", "todos", "tags")
        _emit(args, items, format_table(rows, columns))
        return 0

    if not args.project:
        return _error(f"listing {args.kind} requires a project slug")
    kind = ENTITY_KINDS[PLURALS[args.kind]]
    records = await kind.service.list(db, args.project, _split_tags(args.tags) or None)
    responses = [kind.response.model_validate(r) for r in records]
    _emit(
        args,
        responses,
        format_table([r.model_dump() for r in responses], kind.columns),
    )
    return 0


# --- Content ---

async def cmd_add(db: AsyncSession, args: argparse.Namespace) -> int:
    """Add a document, skill, snippet or prompt template to a project."""
    content = _read_content(args)
    tags = _split_tags(args.tags)
    data: BaseModel
    if args.kind == "document":
        data = DocumentCreate(
            type=args.key.upper(),
            title=args.title or args.key.upper(),
            content=content,
            tags=tags,
            username=args.username,
        )
    elif args.kind == "skill":
        data = SkillCreate(
            name=args.key,
            type=args.skill_type,
            description=args.description,
            content=content,
            tags=tags,
            username=args.username,
        )
    elif args.kind == "snippet":
        if not args.language:
            return _error("snippets require --language")
        data = SnippetCreate(
            name=args.key,
            language=args.language,
            code=content,
            description=args.description,
            tags=tags,
            username=args.username,
        )
    else:
        data = PromptTemplateCreate(
            name=args.key,
            description=args.description,
            content=content,
            category=args.category,
            tags=tags,
            username=args.username,
        )

    kind = ENTITY_KINDS[args.kind]
    record = await kind.service.create(db, args.project, data)
    if record is None:
        return _error(f"project '{args.project}' not found")
    response = kind.response.model_validate(record)
    _emit(args, response, f"Added {args.kind} {args.key} to {args.project} (version 1)")
    return 0


async def cmd_get(db: AsyncSession, args: argparse.Namespace) -> int:
    """Show a project or a content record, optionally at a past version."""
    if args.kind == "project":
        project = await project_service.get_by_slug(db, args.project)
        if project is None:
            return _error(f"project '{args.project}' not found")
        response = ProjectResponse.model_validate(project)
        _emit(args, response, format_record(response.model_dump()))
        return 0

    if not args.key:
        return _error(f"getting a {args.kind} requires its name")
    kind = ENTITY_KINDS[args.kind]
    key = _entity_key(args.kind, args.key)
    if args.version is not None:
        snapshot = await kind.service.get_version(db, args.project, key, args.version)
        if snapshot is None:
            return _error(f"version {args.version} of {args.kind} {key} not found")
        _emit(args, snapshot, format_record(snapshot, body_field=kind.body_field))
        return 0

    record = await kind.service.get(db, args.project, key)
    if record is None:
        return _error(f"{args.kind} {key} not found in '{args.project}'")
    response = kind.response.model_validate(record)
    _emit(args, response, format_record(response.model_dump(), body_field=kind.body_field))
    return 0


async def cmd_history(db: AsyncSession, args: argparse.Namespace) -> int:
    """Show the version history of a content record."""
    kind = ENTITY_KINDS[args.kind]
    key = _entity_key(args.kind, args.key)
    history = await kind.service.get_version_history(db, args.project, key)
    if history is None:
        return _error(f"{args.kind} {key} not found in '{args.project}'")
    _emit(
        args,
        history,
        format_table(history, ("version", "changed_at", "author", "change_note")),
    )
    return 0


async def cmd_delete(db: AsyncSession, args: argparse.Namespace) -> int:
    """Delete a project (with all of its content) or a content record."""
    if args.kind == "project":
        if not await project_service.delete(db, args.project):
            return _error(f"project '{args.project}' not found")
        _emit(args, {"deleted": args.project}, f"Deleted project {args.project}")
        return 0

    if not args.key:
        return _error(f"deleting a {args.kind} requires its name")
    key = _entity_key(args.kind, args.key)
    if not await ENTITY_KINDS[args.kind].service.delete(db, args.project, key):
        return _error(f"{args.kind} {key} not found in '{args.project}'")
    _emit(args, {"deleted": key}, f"Deleted {args.kind} {key} from {args.project}")
    return 0


async def cmd_search(db: AsyncSession, args: argparse.Namespace) -> int:
    """Federated search across all content."""
    result = await search_service.search(
        db,
        args.query,
        project_slug=args.project,
        types=[SearchType(t) for t in args.types] if args.types else None,
        tags=_split_tags(args.tags) or None,
        limit=args.limit,
        offset=args.offset,
    )
    _emit(args, result, format_search_results(result))
    return 0


# --- Catalog ---

def _parse_doc_mapping(value: str) -> CustomDocumentFile:
    doc_type, sep, file_path = value.partition("=")
    if not sep or not file_path:
        raise ValueError(f"expected TYPE=PATH, got '{value}'")
    return CustomDocumentFile(type=doc_type, file_path=file_path)


async def cmd_import(db: AsyncSession, args: argparse.Namespace) -> int:
    """Register an existing project directory and import its documentation files."""
    result = await catalog_service.init_existing_project(db, InitExistingProjectRequest(
        slug=args.slug,
        name=args.name or args.slug,
        directory=args.directory,
        description=args.description,
        tags=_split_tags(args.tags),
        scan_for_docs=not args.no_scan,
        custom_docs=[_parse_doc_mapping(d) for d in args.docs or []],
        username=args.username,
    ))
    response = InitExistingProjectResponse(**result)
    lines = [f"Created project {response.slug}"]
    lines.extend(f"  {doc.type.value:<18} {doc.file}" for doc in response.imported)
    if response.missing:
        lines.append("Not found: " + ", ".join(t.value for t in response.missing))
    _emit(args, response, "\n".join(lines))
    return 0


async def cmd_techstacks(db: AsyncSession, args: argparse.Namespace) -> int:
    """List projects that define a TECHSTACK document."""
    result = await catalog_service.browse_techstacks(
        db, _split_tags(args.tags) or None, args.detailed,
    )
    response = TechstackBrowseResponse(**result)
    if args.detailed and not args.json:
        text = "\n\n".join(
            f"== {item.project_slug} (v{item.current_version}) ==\n{item.content}"
            for item in response.techstacks
        ) or "No results."
    else:
        text = format_table(
            [item.model_dump() for item in response.techstacks],
            ("project_slug", "project_name", "is_template", "current_version", "preview"),
        )
    _emit(args, response.model_dump(mode="json", exclude_none=True), text)
    return 0


# --- Todos ---

async def cmd_todo_list(db: AsyncSession, args: argparse.Namespace) -> int:
    """List a project's todos."""
    todos = await todo_service.list(
        db,
        args.project,
        status=args.status or None,
        priority=args.priority or None,
        include_completed=args.all,
    )
    responses = [TodoResponse.model_validate(t) for t in todos]
    _emit(args, responses, format_table([r.model_dump() for r in responses], TODO_COLUMNS))
    return 0


async def cmd_todo_add(db: AsyncSession, args: argparse.Namespace) -> int:
    """Create a todo."""
    todo = await todo_service.create(db, args.project, TodoCreate(
        title=args.title,
        description=args.description,
        priority=args.priority,
        tags=_split_tags(args.tags),
        parent_id=UUID(args.parent) if args.parent else None,
        username=args.username,
    ))
    if todo is None:
        return _error(f"project '{args.project}' not found")
    response = TodoResponse.model_validate(todo)
    _emit(args, response, f"Created todo {response.id}")
    return 0


async def _change_status(
    db: AsyncSession,
    args: argparse.Namespace,
    action: Callable[..., Awaitable[Any]],
    verb: str,
) -> int:
    todo = await action(db, UUID(args.todo_id), note=args.note, username=args.username)
    if todo is None:
        return _error(f"todo {args.todo_id} not found")
    response = TodoResponse.model_validate(todo)
    _emit(args, response, f"{verb} todo {response.id}: {response.title}")
    return 0


async def cmd_todo_done(db: AsyncSession, args: argparse.Namespace) -> int:
    """Mark a todo completed."""
    return await _change_status(db, args, todo_service.mark_complete, "Completed")


async def cmd_todo_start(db: AsyncSession, args: argparse.Namespace) -> int:
    """Mark a todo in progress."""
    return await _change_status(db, args, todo_service.mark_in_progress, "Started")


async def cmd_todo_show(db: AsyncSession, args: argparse.Namespace) -> int:
    """Show a todo with its Q&A entries."""
    todo = await todo_service.get(db, UUID(args.todo_id))
    if todo is None:
        return _error(f"todo {args.todo_id} not found")
    response = TodoResponse.model_validate(todo)
    record = response.model_dump(exclude={"questions_answers"})
    text = format_record(record, body_field="description")
    for qa in response.questions_answers:
        text += f"\n\nQ: {qa.question}\nA: {qa.answer}"
    _emit(args, response, text)
    return 0


async def cmd_todo_stats(db: AsyncSession, args: argparse.Namespace) -> int:
    """Todo counts for a project."""
    stats = await todo_service.get_stats(db, args.project)
    if stats is None:
        return _error(f"project '{args.project}' not found")
    _emit(args, stats, format_todo_stats(stats))
    return 0


# --- Parser ---

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser. Command handlers are attached as `handler` defaults."""
    parser = argparse.ArgumentParser(
        prog="context-man",
        description="Manage project context: documents, skills, snippets, prompts and todos.",
    )
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--username", help="Author to record on writes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create a project")
    init_parser.add_argument("slug")
    init_parser.add_argument("--name")
    init_parser.add_argument("--description", default="")
    init_parser.add_argument("--tags", help="Comma-separated tags")
    init_parser.add_argument("--template", action="store_true", help="Mark as a catalog template")
    init_parser.set_defaults(handler=cmd_init)

    import_parser = subparsers.add_parser(
        "import", help="Register an existing project directory and import its docs",
    )
    import_parser.add_argument("slug")
    import_parser.add_argument("directory")
    import_parser.add_argument("--name")
    import_parser.add_argument("--description", default="")
    import_parser.add_argument("--tags", help="Comma-separated tags")
    import_parser.add_argument(
        "--doc", dest="docs", action="append", metavar="TYPE=PATH",
        help="Import PATH (relative to the directory) as document TYPE",
    )
    import_parser.add_argument(
        "--no-scan", action="store_true", help="Only import the --doc mappings",
    )
    import_parser.set_defaults(handler=cmd_import)

    techstacks_parser = subparsers.add_parser(
        "techstacks", help="List projects that define a TECHSTACK document",
    )
    techstacks_parser.add_argument("--tags", help="Comma-separated tags (any match)")
    techstacks_parser.add_argument("--detailed", action="store_true", help="Show full content")
    techstacks_parser.set_defaults(handler=cmd_techstacks)

    list_parser = subparsers.add_parser("list", help="List projects or project content")
    list_parser.add_argument("kind", choices=["projects", *PLURALS])
    list_parser.add_argument("project", nargs="?")
    list_parser.add_argument("--tags", help="Comma-separated tags (any match)")
    list_parser.add_argument("--templates", action="store_true", help="Only template projects")
    list_parser.add_argument("--limit", type=int, default=50)
    list_parser.set_defaults(handler=cmd_list)

    add_parser = subparsers.add_parser("add", help="Add content to a project")
    add_parser.add_argument("kind", choices=list(ENTITY_KINDS))
    add_parser.add_argument("project")
    add_parser.add_argument("key", help="Document type, or skill/snippet/prompt name")
    source = add_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--content")
    source.add_argument("--file")
    add_parser.add_argument("--title", help="Document title")
    add_parser.add_argument("--description", default="")
    add_parser.add_argument("--tags", help="Comma-separated tags")
    add_parser.add_argument(
        "--skill-type",
        choices=[t.value for t in SkillType],
        default=SkillType.INSTRUCTIONS.value,
    )
    add_parser.add_argument("--language", help="Snippet language")
    add_parser.add_argument("--category", help="Prompt template category")
    add_parser.set_defaults(handler=cmd_add)

    get_parser = subparsers.add_parser("get", help="Show a project or a content record")
    get_parser.add_argument("kind", choices=["project", *ENTITY_KINDS])
    get_parser.add_argument("project")
    get_parser.add_argument("key", nargs="?")
    get_parser.add_argument("--version", type=int)
    get_parser.set_defaults(handler=cmd_get)

    history_parser = subparsers.add_parser("history", help="Show version history")
    history_parser.add_argument("kind", choices=list(ENTITY_KINDS))
    history_parser.add_argument("project")
    history_parser.add_argument("key")
    history_parser.set_defaults(handler=cmd_history)

    delete_parser = subparsers.add_parser("delete", help="Delete a project or a content record")
    delete_parser.add_argument("kind", choices=["project", *ENTITY_KINDS])
    delete_parser.add_argument("project")
    delete_parser.add_argument("key", nargs="?")
    delete_parser.set_defaults(handler=cmd_delete)

    search_parser = subparsers.add_parser("search", help="Search all content")
    search_parser.add_argument("query")
    search_parser.add_argument("--project")
    search_parser.add_argument(
        "--type", dest="types", action="append", choices=[t.value for t in SearchType],
    )
    search_parser.add_argument("--tags", help="Comma-separated tags (any match)")
    search_parser.add_argument("--limit", type=int, default=20)
    search_parser.add_argument("--offset", type=int, default=0)
    search_parser.set_defaults(handler=cmd_search)

    todo_parser = subparsers.add_parser("todo", help="Manage todos")
    todo_commands = todo_parser.add_subparsers(dest="todo_command", required=True)

    todo_list = todo_commands.add_parser("list", help="List todos")
    todo_list.add_argument("project")
    todo_list.add_argument("--status", action="append", choices=[s.value for s in TodoStatus])
    todo_list.add_argument(
        "--priority", action="append", choices=[p.value for p in TodoPriority],
    )
    todo_list.add_argument("--all", action="store_true", help="Include closed todos")
    todo_list.set_defaults(handler=cmd_todo_list)

    todo_add = todo_commands.add_parser("add", help="Create a todo")
    todo_add.add_argument("project")
    todo_add.add_argument("title")
    todo_add.add_argument("--description", default="")
    todo_add.add_argument(
        "--priority",
        choices=[p.value for p in TodoPriority],
        default=TodoPriority.MEDIUM.value,
    )
    todo_add.add_argument("--tags", help="Comma-separated tags")
    todo_add.add_argument("--parent", help="Parent todo id")
    todo_add.set_defaults(handler=cmd_todo_add)

    for name, handler, help_text in (
        ("done", cmd_todo_done, "Mark a todo completed"),
        ("start", cmd_todo_start, "Mark a todo in progress"),
    ):
        status_parser = todo_commands.add_parser(name, help=help_text)
        status_parser.add_argument("todo_id")
        status_parser.add_argument("--note", help="Change note for the version history")
        status_parser.set_defaults(handler=handler)

    todo_show = todo_commands.add_parser("show", help="Show a todo")
    todo_show.add_argument("todo_id")
    todo_show.set_defaults(handler=cmd_todo_show)

    todo_stats = todo_commands.add_parser("stats", help="Todo counts for a project")
    todo_stats.add_argument("project")
    todo_stats.set_defaults(handler=cmd_todo_stats)

    serve_parser = subparsers.add_parser("serve", help="Run the REST API or MCP server")
    serve_parser.add_argument("target", choices=["api", "mcp"])
    serve_parser.add_argument("--host")
    serve_parser.add_argument("--port", type=int)

    subparsers.add_parser("init-db", help="Create database tables")
    return parser


async def run(args: argparse.Namespace) -> int:
    """Run a command handler in one unit of work and map expected errors to exit code 1."""
    handler: Handler = args.handler
    try:
        async with get_session_factory()() as db:
            try:
                code = await handler(db, args)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
    except EXPECTED_ERRORS as e:
        return _error(str(e))
    return code


async def _run_with_tables(args: argparse.Namespace) -> int:
    if get_settings().auto_create_tables:
        await create_tables()
    return await run(args)


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.target == "api":
        uvicorn.run(
            "api.main:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
        )
        return 0
    run_mcp(host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        return _serve(args)
    if args.command == "init-db":
        asyncio.run(create_tables())
        print(f"Tables ready ({settings.database_url})")
        return 0
    return asyncio.run(_run_with_tables(args))


if __name__ == "__main__":
    sys.exit(main())

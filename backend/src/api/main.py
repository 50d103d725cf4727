"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import (
    catalog,
    documents,
    health,
    projects,
    prompt_templates,
    search,
    skills,
    snippets,
    todos,
)
from core.config import get_settings
from db.session import create_tables
from services.exceptions import (
    ConflictError,
    InvalidVersionError,
    TemplateError,
    TodoHierarchyError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    logging.basicConfig(
        level=app_settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Startup: create tables for local/SQLite deployments
    if app_settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables ensured")

    yield


app_settings = get_settings()

app = FastAPI(
    title="Context Manager API",
    description="Projects, documents, skills, code snippets, prompt templates and todos "
                "with version history and federated search.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ConflictError)
async def conflict_exception_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    """Duplicate keys and stale writes."""
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(TemplateError)
async def template_exception_handler(_request: Request, exc: TemplateError) -> JSONResponse:
    """Missing required variables and template syntax errors."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(TodoHierarchyError)
async def todo_hierarchy_exception_handler(
    _request: Request, exc: TodoHierarchyError,
) -> JSONResponse:
    """Invalid todo parent assignments."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InvalidVersionError)
async def invalid_version_exception_handler(
    _request: Request, exc: InvalidVersionError,
) -> JSONResponse:
    """Version numbers below 1."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and hide internals from the client."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(projects.router)
app.include_router(documents.router)
app.include_router(skills.router)
app.include_router(snippets.router)
app.include_router(prompt_templates.router)
app.include_router(todos.project_router)
app.include_router(todos.router)
app.include_router(search.router)
app.include_router(catalog.router)

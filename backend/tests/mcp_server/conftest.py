"""Test fixtures for MCP server tests."""
from collections.abc import AsyncGenerator, Iterator
from unittest.mock import patch

import pytest
from fastmcp import Client
from sqlalchemy.ext.asyncio import async_sessionmaker

from schemas.document import DocumentCreate
from schemas.project import ProjectCreate
from schemas.prompt_template import PromptTemplateCreate, TemplateVariable
from schemas.skill import SkillCreate
from schemas.snippet import SnippetCreate
from services.document_service import document_service
from services.project_service import project_service
from services.prompt_template_service import prompt_template_service
from services.skill_service import skill_service
from services.snippet_service import snippet_service


@pytest.fixture
def tool_sessions(session_factory: async_sessionmaker) -> Iterator[async_sessionmaker]:
    """Point the tools at the test database."""
    with patch("mcp_server.server.get_session_factory", return_value=session_factory):
        yield session_factory


@pytest.fixture
async def mcp_client(
    tool_sessions: async_sessionmaker,  # noqa: ARG001 - patch needed for side effect
) -> AsyncGenerator[Client]:
    """Create an MCP client connected to the server in memory."""
    from mcp_server.server import mcp

    async with Client(transport=mcp) as client:
        yield client


@pytest.fixture
async def seeded(session_factory: async_sessionmaker) -> None:
    """
    A user project and a template project.

    my-app: PLAN document, two skills (one inactive), a snippet and a prompt.
    fastapi-stack: template with TECHSTACK, CODING_GUIDELINES and one skill.
    """
    async with session_factory() as db:
        await project_service.create(
            db, ProjectCreate(slug="my-app", name="My App", tags=["python"]),
        )
        await document_service.create(
            db, "my-app", DocumentCreate(type="PLAN", title="Plan", content="Build the API"),
        )
        await skill_service.create(
            db, "my-app", SkillCreate(name="review", content="Review carefully"),
        )
        await skill_service.create(
            db, "my-app", SkillCreate(name="legacy", content="Old", is_active=False),
        )
        await snippet_service.create(
            db, "my-app", SnippetCreate(name="retry", language="python", code="def retry(): ..."),
        )
        await prompt_template_service.create(
            db,
            "my-app",
            PromptTemplateCreate(
                name="explain",
                content="Explain {{ topic }} to a {{ audience }}",
                variables=[
                    TemplateVariable(name="topic", required=True),
                    TemplateVariable(name="audience", default_value="beginner"),
                ],
            ),
        )

        await project_service.create(
            db,
            ProjectCreate(
                slug="fastapi-stack", name="FastAPI Stack", tags=["api"], is_template=True,
            ),
        )
        await document_service.create(
            db,
            "fastapi-stack",
            DocumentCreate(type="TECHSTACK", title="Stack", content="FastAPI and SQLAlchemy"),
        )
        await document_service.create(
            db,
            "fastapi-stack",
            DocumentCreate(type="CODING_GUIDELINES", title="Rules", content="Type everything"),
        )
        await skill_service.create(
            db, "fastapi-stack", SkillCreate(name="db-migrations", content="Use migrations"),
        )
        await db.commit()

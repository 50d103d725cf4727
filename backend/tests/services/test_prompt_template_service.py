"""Tests for prompt template service: variable extraction, versioning and rendering."""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from models.project import Project
from schemas.prompt_template import (
    PromptTemplateCreate,
    PromptTemplateUpdate,
    TemplateVariable,
)
from services.exceptions import MissingRequiredVariableError
from services.prompt_template_service import prompt_template_service


async def test__create__extracts_variables_when_none_declared(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    template = await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(name="review", content="Review {{ code }} in {{ language }}"),
    )

    assert [v["name"] for v in template.variables] == ["code", "language"]
    assert all(v["required"] is False for v in template.variables)


async def test__create__keeps_declared_variables(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    template = await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(
            name="review",
            content="Review {{ code }}",
            variables=[TemplateVariable(name="code", required=True, description="Code")],
            category="review",
        ),
    )

    assert template.variables == [
        {"name": "code", "description": "Code", "required": True, "default_value": None},
    ]
    assert template.category == "review"


async def test__update__content_change_snapshots_old_variables(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(name="greet", content="Hello {{ name }}"),
    )

    template = await prompt_template_service.update(
        db_session,
        "my-app",
        "greet",
        PromptTemplateUpdate(content="Hi {{ first }} {{ last }}"),
    )

    assert template.current_version == 2
    assert [v["name"] for v in template.variables] == ["first", "last"]
    snapshot = template.versions[0]
    assert snapshot["content"] == "Hello {{ name }}"
    assert [v["name"] for v in snapshot["variables"]] == ["name"]


async def test__update__category_can_be_cleared(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(name="greet", content="Hello", category="misc"),
    )

    template = await prompt_template_service.update(
        db_session, "my-app", "greet", PromptTemplateUpdate(category=None),
    )

    assert template.category is None
    assert template.current_version == 1


async def test__list__filters_by_category(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    for name, category in [("a", "review"), ("b", "docs"), ("c", "review")]:
        await prompt_template_service.create(
            db_session,
            "my-app",
            PromptTemplateCreate(name=name, content="x", category=category),
        )

    templates = await prompt_template_service.list(db_session, "my-app", category="review")
    assert [t.name for t in templates] == ["a", "c"]


async def test__render__uses_defaults_and_supplied_values(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(
            name="review",
            content="Review this {{ language }} code: {{ code }}",
            variables=[
                TemplateVariable(name="language", required=True, default_value="Python"),
                TemplateVariable(name="code", required=True),
            ],
        ),
    )

    rendered = await prompt_template_service.render(
        db_session, "my-app", "review", {"code": "print(1)"},
    )
    assert rendered == "Review this Python code: print(1)"


async def test__render__missing_required_variable_raises(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await prompt_template_service.create(
        db_session,
        "my-app",
        PromptTemplateCreate(
            name="review",
            content="{{ code }}",
            variables=[TemplateVariable(name="code", required=True)],
        ),
    )

    with pytest.raises(MissingRequiredVariableError):
        await prompt_template_service.render(db_session, "my-app", "review", {})


async def test__render__missing_template_returns_none(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    assert await prompt_template_service.render(db_session, "my-app", "nope", {}) is None

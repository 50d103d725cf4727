"""Tests for skill, snippet and prompt template endpoints."""
from httpx import AsyncClient

from models.project import Project


# =============================================================================
# Skills
# =============================================================================


async def test_create_and_get_skill(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Skills default to active instructions."""
    response = await client.post(
        "/projects/my-app/skills/",
        json={"name": "code-review", "description": "Review PRs", "content": "Check tests"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["type"] == "instructions"
    assert data["is_active"] is True
    assert data["current_version"] == 1

    response = await client.get("/projects/my-app/skills/code-review")
    assert response.status_code == 200
    assert response.json()["content"] == "Check tests"


async def test_create_skill_duplicate_name_returns_409(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Skill names are unique within a project."""
    body = {"name": "code-review", "content": "x"}
    await client.post("/projects/my-app/skills/", json=body)
    response = await client.post("/projects/my-app/skills/", json=body)
    assert response.status_code == 409


async def test_create_skill_invalid_name_returns_422(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Names are letters, digits, underscores and hyphens."""
    response = await client.post(
        "/projects/my-app/skills/", json={"name": "no spaces", "content": "x"},
    )
    assert response.status_code == 422


async def test_list_skills_filters(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Type and active filters."""
    await client.post("/projects/my-app/skills/", json={"name": "a", "content": "x"})
    await client.post(
        "/projects/my-app/skills/",
        json={"name": "b", "content": "x", "type": "code_template"},
    )
    await client.post(
        "/projects/my-app/skills/",
        json={"name": "c", "content": "x", "is_active": False},
    )

    all_skills = (await client.get("/projects/my-app/skills/")).json()
    templates = (await client.get(
        "/projects/my-app/skills/", params={"type": "code_template"},
    )).json()
    active = (await client.get("/projects/my-app/skills/", params={"active_only": True})).json()

    assert [s["name"] for s in all_skills] == ["a", "b", "c"]
    assert [s["name"] for s in templates] == ["b"]
    assert [s["name"] for s in active] == ["a", "b"]


async def test_update_skill_versions_and_deactivate(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Content changes are versioned; toggling is_active is not."""
    await client.post("/projects/my-app/skills/", json={"name": "review", "content": "v1"})

    toggled = (await client.put(
        "/projects/my-app/skills/review", json={"is_active": False},
    )).json()
    assert toggled["is_active"] is False
    assert toggled["current_version"] == 1

    updated = (await client.put(
        "/projects/my-app/skills/review", json={"content": "v2", "change_note": "Stricter"},
    )).json()
    assert updated["current_version"] == 2

    old = (await client.get("/projects/my-app/skills/review/versions/1")).json()
    assert old["content"] == "v1"
    assert old["change_note"] == "Stricter"


async def test_skill_not_found(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Missing skills return 404 on every route."""
    assert (await client.get("/projects/my-app/skills/nope")).status_code == 404
    assert (await client.put(
        "/projects/my-app/skills/nope", json={"content": "x"},
    )).status_code == 404
    assert (await client.delete("/projects/my-app/skills/nope")).status_code == 404
    assert (await client.get("/projects/my-app/skills/nope/versions")).status_code == 404


# =============================================================================
# Snippets
# =============================================================================


async def test_snippet_lifecycle(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Create, version the code, list by language, delete."""
    response = await client.post(
        "/projects/my-app/snippets/",
        json={"name": "retry", "language": "Python", "code": "def retry(): ..."},
    )
    assert response.status_code == 201
    assert response.json()["language"] == "python"

    await client.post(
        "/projects/my-app/snippets/",
        json={"name": "fetch", "language": "typescript", "code": "fetch()"},
    )

    updated = (await client.put(
        "/projects/my-app/snippets/retry", json={"code": "def retry(n): ..."},
    )).json()
    assert updated["current_version"] == 2

    python = (await client.get(
        "/projects/my-app/snippets/", params={"language": "PYTHON"},
    )).json()
    assert [s["name"] for s in python] == ["retry"]

    old = (await client.get("/projects/my-app/snippets/retry/versions/1")).json()
    assert old["code"] == "def retry(): ..."

    assert (await client.delete("/projects/my-app/snippets/retry")).status_code == 204
    assert (await client.get("/projects/my-app/snippets/retry")).status_code == 404


# =============================================================================
# Prompt templates
# =============================================================================


async def test_create_prompt_template_extracts_variables(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Undeclared variables are discovered from the content."""
    response = await client.post(
        "/projects/my-app/prompts/",
        json={"name": "summarize", "content": "Summarize {{ text }} in {{ words }} words"},
    )
    assert response.status_code == 201
    names = [v["name"] for v in response.json()["variables"]]
    assert names == ["text", "words"]


async def test_render_prompt_template_syntax_error_returns_400(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Templates that fail to parse are reported when rendered."""
    await client.post(
        "/projects/my-app/prompts/",
        json={"name": "broken", "content": "Hello {{ name"},
    )

    response = await client.post("/projects/my-app/prompts/broken/render", json={"variables": {}})
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Template syntax error")


async def test_render_prompt_template(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Supplied values and declared defaults are substituted."""
    await client.post(
        "/projects/my-app/prompts/",
        json={
            "name": "review",
            "content": "Review this {{ language }} code:\n{{ code }}",
            "variables": [
                {"name": "language", "required": True, "default_value": "Python"},
                {"name": "code", "required": True},
            ],
        },
    )

    response = await client.post(
        "/projects/my-app/prompts/review/render",
        json={"variables": {"code": "print('hi')"}},
    )
    assert response.status_code == 200
    assert response.json()["rendered_content"] == "Review this Python code:\nprint('hi')"


async def test_render_prompt_template_missing_required_returns_400(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Required variables without a default must be supplied."""
    await client.post(
        "/projects/my-app/prompts/",
        json={
            "name": "review",
            "content": "{{ code }}",
            "variables": [{"name": "code", "required": True}],
        },
    )

    response = await client.post("/projects/my-app/prompts/review/render", json={"variables": {}})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required variable: code"


async def test_render_prompt_template_not_found(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Missing templates return 404."""
    response = await client.post("/projects/my-app/prompts/nope/render", json={"variables": {}})
    assert response.status_code == 404


async def test_list_prompt_templates_by_category(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Category filter is exact."""
    for name, category in [("a", "review"), ("b", "docs")]:
        await client.post(
            "/projects/my-app/prompts/",
            json={"name": name, "content": "x", "category": category},
        )

    response = await client.get("/projects/my-app/prompts/", params={"category": "docs"})
    assert [p["name"] for p in response.json()] == ["b"]

"""Tests for the federated search endpoint."""
from httpx import AsyncClient

from models.project import Project


async def _seed(client: AsyncClient) -> None:
    await client.post(
        "/projects/my-app/documents/",
        json={"type": "TECHSTACK", "title": "Stack", "content": "Redis caching layer"},
    )
    await client.post(
        "/projects/my-app/snippets/",
        json={"name": "redis-client", "language": "python", "code": "Redis()", "tags": ["cache"]},
    )
    await client.post(
        "/projects/my-app/prompts/",
        json={"name": "explain", "content": "Explain {{ code }}"},
    )


async def test_search_across_collections(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Hits from every collection come back ranked together."""
    await _seed(client)

    response = await client.get("/search/", params={"q": "redis"})
    assert response.status_code == 200

    data = response.json()
    assert data["total"] == 2
    assert data["offset"] == 0
    assert data["limit"] == 20
    assert data["has_more"] is False
    assert {r["type"] for r in data["results"]} == {"document", "snippet"}
    first = data["results"][0]
    assert first["project_slug"] == "my-app"
    assert first["score"] > data["results"][1]["score"]


async def test_search_type_and_tag_filters(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Filters narrow the collections and the tag set."""
    await _seed(client)

    by_type = (await client.get("/search/", params={"q": "redis", "types": ["document"]})).json()
    by_tag = (await client.get("/search/", params={"q": "redis", "tags": ["cache"]})).json()

    assert [r["name"] for r in by_type["results"]] == ["TECHSTACK"]
    assert [r["name"] for r in by_tag["results"]] == ["redis-client"]


async def test_search_pagination(
    client: AsyncClient,
    project: Project,  # noqa: ARG001
) -> None:
    """Limit and offset page through the ranked results."""
    await _seed(client)

    page = (await client.get("/search/", params={"q": "redis", "limit": 1})).json()
    assert len(page["results"]) == 1
    assert page["total"] == 2
    assert page["has_more"] is True


async def test_search_blank_query_returns_400(client: AsyncClient) -> None:
    """Whitespace-only queries have no terms."""
    response = await client.get("/search/", params={"q": "   "})
    assert response.status_code == 400


async def test_search_invalid_params_return_422(client: AsyncClient) -> None:
    """Query parameter bounds are validated."""
    assert (await client.get("/search/", params={"q": "x", "limit": 0})).status_code == 422
    assert (await client.get("/search/", params={"q": "x", "limit": 101})).status_code == 422
    assert (await client.get("/search/", params={"q": "x", "types": ["bogus"]})).status_code == 422

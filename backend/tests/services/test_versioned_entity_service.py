"""
Tests for the shared versioning engine.

Exercised through the document and snippet services, which add nothing to the
base CRUD and version-history behavior.
"""
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from models.project import Project
from schemas.document import DocumentCreate, DocumentUpdate
from schemas.snippet import SnippetCreate, SnippetUpdate
from services.document_service import document_service
from services.exceptions import (
    InvalidVersionError,
    NaturalKeyConflictError,
    StaleVersionError,
)
from services.snippet_service import snippet_service
from services.versioned_entity_service import CURRENT_VERSION_NOTE


async def _create_plan(db_session: AsyncSession, content: str = "v1 content", **kwargs) -> None:
    await document_service.create(
        db_session,
        "my-app",
        DocumentCreate(type="PLAN", title="Plan", content=content, **kwargs),
    )


# =============================================================================
# Create / Get / List / Delete
# =============================================================================


async def test__create__starts_at_version_one_with_empty_history(
    db_session: AsyncSession,
    project: Project,
) -> None:
    doc = await document_service.create(
        db_session,
        "my-app",
        DocumentCreate(type="plan", title="Plan", content="Ship it", tags=["Roadmap"]),
    )

    assert doc is not None
    assert doc.project_id == project.id
    assert doc.type == "PLAN"
    assert doc.current_version == 1
    assert doc.versions == []
    assert doc.tags == ["roadmap"]


async def test__create__missing_project_returns_none(db_session: AsyncSession) -> None:
    result = await document_service.create(
        db_session,
        "no-such-project",
        DocumentCreate(type="PLAN", title="Plan", content="x"),
    )
    assert result is None


async def test__create__duplicate_natural_key_raises_conflict(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    with pytest.raises(NaturalKeyConflictError) as exc:
        await _create_plan(db_session, content="other")
    assert exc.value.key == "PLAN"


async def test__create__same_name_allowed_in_different_projects(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    from schemas.project import ProjectCreate
    from services.project_service import project_service

    await project_service.create(db_session, ProjectCreate(slug="other-app", name="Other"))
    data = SnippetCreate(name="retry", language="python", code="pass")

    first = await snippet_service.create(db_session, "my-app", data)
    second = await snippet_service.create(db_session, "other-app", data)

    assert first.id != second.id


async def test__create__records_author_on_entity_and_project(
    db_session: AsyncSession,
    project: Project,
) -> None:
    await _create_plan(db_session, username="alice")
    doc = await document_service.get(db_session, "my-app", "PLAN")

    assert doc.authors == ["alice"]
    assert doc.last_author == "alice"
    assert project.authors == ["alice"]
    assert project.last_author == "alice"


async def test__get__slug_is_case_insensitive(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    doc = await document_service.get(db_session, "  My-App ", "PLAN")
    assert doc is not None


async def test__get__missing_returns_none(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    assert await document_service.get(db_session, "my-app", "SCOPE") is None
    assert await document_service.get(db_session, "no-such-project", "PLAN") is None


async def test__list__orders_by_key_and_filters_by_any_tag(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    for name, tags in [("zeta", ["db"]), ("alpha", ["http"]), ("mid", ["db", "http"])]:
        await snippet_service.create(
            db_session, "my-app", SnippetCreate(name=name, language="Python", code="x", tags=tags),
        )

    all_snippets = await snippet_service.list(db_session, "my-app")
    assert [s.name for s in all_snippets] == ["alpha", "mid", "zeta"]

    db_snippets = await snippet_service.list(db_session, "my-app", ["db"])
    assert [s.name for s in db_snippets] == ["mid", "zeta"]

    python = await snippet_service.list(db_session, "my-app", language="PYTHON")
    assert len(python) == 3
    assert all(s.language == "python" for s in python)


async def test__list__missing_project_returns_empty(db_session: AsyncSession) -> None:
    assert await document_service.list(db_session, "no-such-project") == []


async def test__delete__returns_true_then_false(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    assert await document_service.delete(db_session, "my-app", "PLAN") is True
    assert await document_service.get(db_session, "my-app", "PLAN") is None
    assert await document_service.delete(db_session, "my-app", "PLAN") is False


# =============================================================================
# Versioning
# =============================================================================


async def test__update__content_change_creates_new_version(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    doc = await document_service.update(
        db_session,
        "my-app",
        "PLAN",
        DocumentUpdate(content="v2 content", change_note="Rewrote plan", username="bob"),
    )

    assert doc.current_version == 2
    assert doc.content == "v2 content"
    assert len(doc.versions) == 1
    snapshot = doc.versions[0]
    assert snapshot["version"] == 1
    assert snapshot["content"] == "v1 content"
    assert snapshot["change_note"] == "Rewrote plan"
    assert snapshot["author"] == "bob"
    assert isinstance(datetime.fromisoformat(snapshot["changed_at"]), datetime)


async def test__update__versions_increase_by_exactly_one(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    for i in range(2, 6):
        doc = await document_service.update(
            db_session, "my-app", "PLAN", DocumentUpdate(content=f"v{i}"),
        )
        assert doc.current_version == i

    assert [v["version"] for v in doc.versions] == [1, 2, 3, 4]


async def test__update__identical_content_does_not_create_version(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    doc = await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v1 content"),
    )

    assert doc.current_version == 1
    assert doc.versions == []


async def test__update__unversioned_fields_update_in_place(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    doc = await document_service.update(
        db_session,
        "my-app",
        "PLAN",
        DocumentUpdate(title="Renamed plan", tags=["q3"]),
    )

    assert doc.title == "Renamed plan"
    assert doc.tags == ["q3"]
    assert doc.current_version == 1
    assert doc.versions == []


async def test__update__history_entries_are_never_modified(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    doc = await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v2", change_note="first"),
    )
    first_snapshot = dict(doc.versions[0])

    doc = await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v3", change_note="second"),
    )

    assert doc.versions[0] == first_snapshot
    assert doc.versions[1]["content"] == "v2"


async def test__update__expected_version_mismatch_raises_stale_version(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    await document_service.update(db_session, "my-app", "PLAN", DocumentUpdate(content="v2"))

    with pytest.raises(StaleVersionError) as exc:
        await document_service.update(
            db_session,
            "my-app",
            "PLAN",
            DocumentUpdate(content="v3", expected_version=1),
        )
    assert exc.value.expected == 1
    assert exc.value.actual == 2


async def test__update__expected_version_match_succeeds(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)

    doc = await document_service.update(
        db_session,
        "my-app",
        "PLAN",
        DocumentUpdate(content="v2", expected_version=1),
    )
    assert doc.current_version == 2


async def test__update__missing_entity_returns_none(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    result = await document_service.update(
        db_session, "my-app", "SCOPE", DocumentUpdate(content="x"),
    )
    assert result is None


async def test__update__author_tracking_keeps_unique_insertion_order(
    db_session: AsyncSession,
    project: Project,
) -> None:
    await _create_plan(db_session, username="alice")
    await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v2", username="bob"),
    )
    doc = await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v3", username="alice"),
    )

    assert doc.authors == ["alice", "bob"]
    assert doc.last_author == "alice"
    assert project.authors == ["alice", "bob"]


async def test__update__snippet_code_is_versioned(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await snippet_service.create(
        db_session, "my-app", SnippetCreate(name="retry", language="python", code="old()"),
    )

    snippet = await snippet_service.update(
        db_session, "my-app", "retry", SnippetUpdate(code="new()", description="Retries"),
    )

    assert snippet.current_version == 2
    assert snippet.versions[0]["code"] == "old()"
    assert snippet.description == "Retries"


# =============================================================================
# Version retrieval
# =============================================================================


async def test__get_version__current_version_is_synthesized(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session, username="alice")
    doc = await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v2", username="bob"),
    )

    current = await document_service.get_version(db_session, "my-app", "PLAN", 2)

    assert current["version"] == 2
    assert current["content"] == "v2"
    assert current["changed_at"] == doc.updated_at
    assert current["change_note"] is None
    assert current["author"] == "bob"


async def test__get_version__returns_historical_snapshot(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v2", change_note="why"),
    )

    snapshot = await document_service.get_version(db_session, "my-app", "PLAN", 1)

    assert snapshot["version"] == 1
    assert snapshot["content"] == "v1 content"
    assert snapshot["change_note"] == "why"
    assert isinstance(snapshot["changed_at"], datetime)


async def test__get_version__unknown_version_returns_none(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    assert await document_service.get_version(db_session, "my-app", "PLAN", 7) is None


@pytest.mark.parametrize("version", [0, -1])
async def test__get_version__non_positive_version_raises(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
    version: int,
) -> None:
    await _create_plan(db_session)
    with pytest.raises(InvalidVersionError):
        await document_service.get_version(db_session, "my-app", "PLAN", version)


async def test__get_version_history__newest_first_with_current_entry(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _create_plan(db_session)
    await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v2", change_note="second"),
    )
    await document_service.update(
        db_session, "my-app", "PLAN", DocumentUpdate(content="v3", change_note="third"),
    )

    history = await document_service.get_version_history(db_session, "my-app", "PLAN")

    assert [h["version"] for h in history] == [3, 2, 1]
    assert history[0]["change_note"] == CURRENT_VERSION_NOTE
    assert history[1]["change_note"] == "third"
    assert history[2]["change_note"] == "second"
    assert set(history[0]) == {"version", "changed_at", "change_note", "author"}


async def test__get_version_history__missing_entity_returns_none(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    assert await document_service.get_version_history(db_session, "my-app", "PLAN") is None

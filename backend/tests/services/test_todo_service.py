"""Tests for todo service: status side effects, hierarchy, Q&A and stats."""
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from models.project import Project
from models.todo import TodoStatus
from schemas.project import ProjectCreate
from schemas.todo import QuestionAnswerCreate, TodoCreate, TodoUpdate
from services.exceptions import TodoHierarchyError
from services.project_service import project_service
from services.todo_service import (
    DEFAULT_COMPLETE_NOTE,
    DEFAULT_START_NOTE,
    todo_service,
)


async def _todo(db_session: AsyncSession, title: str = "Write tests", **kwargs):
    return await todo_service.create(db_session, "my-app", TodoCreate(title=title, **kwargs))


async def test__create__defaults(db_session: AsyncSession, project: Project) -> None:
    todo = await _todo(db_session)

    assert todo.project_id == project.id
    assert todo.status == "pending"
    assert todo.priority == "medium"
    assert todo.current_version == 1
    assert todo.versions == []
    assert todo.questions_answers == []
    assert todo.completed_at is None


async def test__create__missing_project_returns_none(db_session: AsyncSession) -> None:
    result = await todo_service.create(db_session, "no-such-project", TodoCreate(title="x"))
    assert result is None


async def test__create__completed_status_sets_completed_at(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session, status=TodoStatus.COMPLETED)
    assert todo.completed_at is not None


async def test__mark_complete__sets_completed_at_and_default_note(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)

    todo = await todo_service.mark_complete(db_session, todo.id)

    assert todo.status == "completed"
    assert todo.completed_at is not None
    assert todo.current_version == 2
    assert todo.versions[0]["status"] == "pending"
    assert todo.versions[0]["change_note"] == DEFAULT_COMPLETE_NOTE


async def test__mark_in_progress__uses_default_note(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)

    todo = await todo_service.mark_in_progress(db_session, todo.id, username="alice")

    assert todo.status == "in_progress"
    assert todo.completed_at is None
    assert todo.versions[0]["change_note"] == DEFAULT_START_NOTE
    assert todo.versions[0]["author"] == "alice"


async def test__mark_complete__custom_note(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)
    todo = await todo_service.mark_complete(db_session, todo.id, note="Shipped in v2")
    assert todo.versions[0]["change_note"] == "Shipped in v2"


async def test__update__reopening_clears_completed_at(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)
    await todo_service.mark_complete(db_session, todo.id)

    todo = await todo_service.update(db_session, todo.id, TodoUpdate(status=TodoStatus.PENDING))

    assert todo.status == "pending"
    assert todo.completed_at is None
    assert todo.current_version == 3


async def test__update__completing_twice_keeps_original_completed_at(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)
    todo = await todo_service.mark_complete(db_session, todo.id)
    first_completed_at = todo.completed_at

    todo = await todo_service.mark_complete(db_session, todo.id)

    assert todo.completed_at == first_completed_at
    assert todo.current_version == 2


async def test__update__priority_change_is_not_versioned(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)

    todo = await todo_service.update(db_session, todo.id, TodoUpdate(priority="critical"))

    assert todo.priority == "critical"
    assert todo.current_version == 1


async def test__update__missing_todo_returns_none(db_session: AsyncSession) -> None:
    assert await todo_service.update(db_session, uuid4(), TodoUpdate(title="x")) is None


async def test__list__hides_closed_todos_by_default(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    open_todo = await _todo(db_session, title="open")
    done = await _todo(db_session, title="done")
    cancelled = await _todo(db_session, title="cancelled")
    await todo_service.mark_complete(db_session, done.id)
    await todo_service.update(db_session, cancelled.id, TodoUpdate(status="cancelled"))

    default = await todo_service.list(db_session, "my-app")
    assert [t.id for t in default] == [open_todo.id]

    everything = await todo_service.list(db_session, "my-app", include_completed=True)
    assert len(everything) == 3

    completed = await todo_service.list_completed(db_session, "my-app")
    assert [t.id for t in completed] == [done.id]


async def test__list__orders_by_priority_then_newest(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    low = await _todo(db_session, title="low", priority="low")
    high_old = await _todo(db_session, title="high-old", priority="high")
    critical = await _todo(db_session, title="critical", priority="critical")
    high_new = await _todo(db_session, title="high-new", priority="high")

    todos = await todo_service.list(db_session, "my-app")

    assert [t.id for t in todos] == [critical.id, high_new.id, high_old.id, low.id]


async def test__list__filters_by_priority_and_tags(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await _todo(db_session, title="a", priority="high", tags=["api"])
    await _todo(db_session, title="b", priority="high", tags=["ui"])
    await _todo(db_session, title="c", priority="low", tags=["api"])

    todos = await todo_service.list(db_session, "my-app", priority=["high"], tags=["api"])

    assert [t.title for t in todos] == ["a"]


async def test__list_pending__includes_in_progress(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    started = await _todo(db_session, title="started")
    await _todo(db_session, title="waiting")
    await todo_service.mark_in_progress(db_session, started.id)

    pending = await todo_service.list_pending(db_session, "my-app")

    assert {t.title for t in pending} == {"started", "waiting"}


# =============================================================================
# Hierarchy
# =============================================================================


async def test__create__subtask_with_parent(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    parent = await _todo(db_session, title="parent")
    child = await _todo(db_session, title="child", parent_id=parent.id)

    subtasks = await todo_service.get_subtasks(db_session, parent.id)

    assert [t.id for t in subtasks] == [child.id]
    root_only = await todo_service.list(db_session, "my-app", root_only=True)
    assert [t.id for t in root_only] == [parent.id]


async def test__create__parent_in_other_project_raises(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    await project_service.create(db_session, ProjectCreate(slug="other", name="Other"))
    foreign = await todo_service.create(db_session, "other", TodoCreate(title="foreign"))

    with pytest.raises(TodoHierarchyError, match="different project"):
        await _todo(db_session, title="child", parent_id=foreign.id)


async def test__create__unknown_parent_raises(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    with pytest.raises(TodoHierarchyError, match="not found"):
        await _todo(db_session, parent_id=uuid4())


async def test__update__parent_cycle_raises(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    grandparent = await _todo(db_session, title="gp")
    parent = await _todo(db_session, title="p", parent_id=grandparent.id)
    child = await _todo(db_session, title="c", parent_id=parent.id)

    with pytest.raises(TodoHierarchyError, match="cycle"):
        await todo_service.update(db_session, grandparent.id, TodoUpdate(parent_id=child.id))

    with pytest.raises(TodoHierarchyError, match="own parent"):
        await todo_service.update(db_session, child.id, TodoUpdate(parent_id=child.id))


async def test__update__parent_can_be_cleared(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    parent = await _todo(db_session, title="parent")
    child = await _todo(db_session, title="child", parent_id=parent.id)

    child = await todo_service.update(db_session, child.id, TodoUpdate(parent_id=None))

    assert child.parent_id is None


async def test__delete__detaches_subtasks(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    parent = await _todo(db_session, title="parent")
    child = await _todo(db_session, title="child", parent_id=parent.id)

    assert await todo_service.delete(db_session, parent.id) is True

    child = await todo_service.get(db_session, child.id)
    assert child is not None
    assert child.parent_id is None
    assert await todo_service.delete(db_session, parent.id) is False


async def test__get_subtasks__missing_todo_returns_none(db_session: AsyncSession) -> None:
    assert await todo_service.get_subtasks(db_session, uuid4()) is None


# =============================================================================
# Q&A, stats and versions
# =============================================================================


async def test__add_qa__appends_without_new_version(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)

    await todo_service.add_qa(
        db_session, todo.id, QuestionAnswerCreate(question="Which DB?", answer="SQLite"),
    )
    todo = await todo_service.add_qa(
        db_session,
        todo.id,
        QuestionAnswerCreate(question="Async?", answer="Yes", context="driver", username="bob"),
    )

    assert todo.current_version == 1
    assert [qa["question"] for qa in todo.questions_answers] == ["Which DB?", "Async?"]
    assert todo.questions_answers[1]["context"] == "driver"
    assert todo.last_author == "bob"

    qas = await todo_service.get_qas(db_session, todo.id)
    assert len(qas) == 2


async def test__add_qa__missing_todo_returns_none(db_session: AsyncSession) -> None:
    data = QuestionAnswerCreate(question="q", answer="a")
    assert await todo_service.add_qa(db_session, uuid4(), data) is None


async def test__get_stats__counts_by_status_and_priority(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    a = await _todo(db_session, title="a", priority="high")
    await _todo(db_session, title="b", priority="high")
    c = await _todo(db_session, title="c", priority="low")
    await todo_service.mark_complete(db_session, a.id)
    await todo_service.mark_in_progress(db_session, c.id)

    stats = await todo_service.get_stats(db_session, "my-app")

    assert stats["total"] == 3
    assert stats["pending"] == 1
    assert stats["in_progress"] == 1
    assert stats["completed"] == 1
    assert stats["cancelled"] == 0
    assert stats["by_priority"] == {"low": 1, "medium": 0, "high": 2, "critical": 0}


async def test__get_stats__missing_project_returns_none(db_session: AsyncSession) -> None:
    assert await todo_service.get_stats(db_session, "no-such-project") is None


async def test__get_version_history__tracks_status_changes(
    db_session: AsyncSession,
    project: Project,  # noqa: ARG001
) -> None:
    todo = await _todo(db_session)
    await todo_service.mark_in_progress(db_session, todo.id)
    await todo_service.mark_complete(db_session, todo.id)

    history = await todo_service.get_version_history(db_session, todo.id)
    first = await todo_service.get_version(db_session, todo.id, 1)

    assert [h["version"] for h in history] == [3, 2, 1]
    assert first["status"] == "pending"
    assert first["title"] == "Write tests"

"""
Create project and content tables.

Revision ID: 5f2c8e41a9d3
Revises:
Create Date: 2026-10-19 10:14:52.118305
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5f2c8e41a9d3"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

CONTENT_TABLES = ("documents", "skills", "code_snippets", "prompt_templates", "todos")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _versioned(table: str) -> list[sa.Column | sa.Constraint]:
    """Columns shared by every versioned content table."""
    return [
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("current_version", sa.Integer(), nullable=False),
        sa.Column("versions", JSONType, nullable=False),
        sa.Column("tags", JSONType, nullable=False),
        sa.Column("authors", JSONType, nullable=False),
        sa.Column("last_author", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name=op.f(f"fk_{table}_project_id_projects"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("tags", JSONType, nullable=False),
        sa.Column("metadata", JSONType, nullable=False),
        sa.Column("is_template", sa.Boolean(), nullable=False),
        sa.Column("authors", JSONType, nullable=False),
        sa.Column("last_author", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_projects")),
    )
    op.create_index(op.f("ix_projects_slug"), "projects", ["slug"], unique=True)
    op.create_index(op.f("ix_projects_is_template"), "projects", ["is_template"])
    op.create_index(op.f("ix_projects_updated_at"), "projects", ["updated_at"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_versioned("documents"),
        sa.UniqueConstraint("project_id", "type", name="uq_documents_project_type"),
    )

    op.create_table(
        "skills",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_versioned("skills"),
        sa.UniqueConstraint("project_id", "name", name="uq_skills_project_name"),
    )
    op.create_index(op.f("ix_skills_is_active"), "skills", ["is_active"])

    op.create_table(
        "code_snippets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("language", sa.String(length=50), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        *_versioned("code_snippets"),
        sa.UniqueConstraint("project_id", "name", name="uq_code_snippets_project_name"),
    )
    op.create_index(op.f("ix_code_snippets_language"), "code_snippets", ["language"])

    op.create_table(
        "prompt_templates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("variables", JSONType, nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        *_versioned("prompt_templates"),
        sa.UniqueConstraint("project_id", "name", name="uq_prompt_templates_project_name"),
    )
    op.create_index(op.f("ix_prompt_templates_category"), "prompt_templates", ["category"])

    op.create_table(
        "todos",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("parent_id", sa.Uuid(), nullable=True),
        sa.Column("questions_answers", JSONType, nullable=False),
        *_versioned("todos"),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["todos.id"],
            name=op.f("fk_todos_parent_id_todos"),
            ondelete="SET NULL",
        ),
    )
    op.create_index(op.f("ix_todos_status"), "todos", ["status"])
    op.create_index(op.f("ix_todos_priority"), "todos", ["priority"])
    op.create_index(op.f("ix_todos_parent_id"), "todos", ["parent_id"])

    for table in CONTENT_TABLES:
        op.create_index(op.f(f"ix_{table}_project_id"), table, ["project_id"])
        op.create_index(op.f(f"ix_{table}_updated_at"), table, ["updated_at"])


def downgrade() -> None:
    """Downgrade schema."""
    for table in reversed(CONTENT_TABLES):
        op.drop_table(table)
    op.drop_table("projects")

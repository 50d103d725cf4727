"""
Base service class for versioned content entities.

Provides the shared create/read/update/delete and version-history logic for
documents, skills, code snippets, prompt templates and todos. Entity-specific
behavior is defined via class attributes and a small set of hooks.

Version semantics:
- The live columns always hold the current version (`current_version`).
- `versions` holds only superseded snapshots, numbered 1..current_version-1.
- A change to any field in `versioned_fields` appends a snapshot of the old
  `snapshot_fields` and bumps `current_version` by exactly one.
- Changes to other fields are applied in place without a new version.
"""
from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.sql import Select

from models.base import utcnow
from models.project import Project
from services.exceptions import (
    InvalidVersionError,
    NaturalKeyConflictError,
    StaleVersionError,
)
from services.utils import merge_unique, tags_match_any

logger = logging.getLogger(__name__)

CURRENT_VERSION_NOTE = "Current version"

# Fields on update schemas that control the write rather than carry data
CONTROL_FIELDS = frozenset({"change_note", "username", "expected_version"})


class VersionedEntity(Protocol):
    """Protocol defining the interface shared by all versioned content models."""

    id: UUID
    project_id: UUID
    tags: list[str]
    current_version: int
    versions: list[dict[str, Any]]
    authors: list[str]
    last_author: str | None
    created_at: datetime
    updated_at: datetime


T = TypeVar("T", bound=VersionedEntity)


class VersionedEntityService(ABC, Generic[T]):
    """
    Abstract base class for versioned entity operations.

    Subclasses must define:
    - model: The SQLAlchemy model class
    - entity_name: Human-readable name for logs and error messages
    - key_field: Natural key column name ("type", "name" or "id")
    - versioned_fields: Fields whose change creates a new version
    - snapshot_fields: Fields copied into each history entry

    Subclasses must implement:
    - _build_entity(): Construct a new model instance from a create schema
    """

    model: type[T]
    entity_name: str
    key_field: str = "name"
    versioned_fields: tuple[str, ...] = ("content",)
    snapshot_fields: tuple[str, ...] = ("content",)
    # Fields that may be explicitly cleared with null on update
    nullable_fields: tuple[str, ...] = ()

    # --- Abstract / hook methods ---

    @abstractmethod
    def _build_entity(self, project: Project, data: BaseModel) -> T:
        """Create a new (unsaved) model instance for the project."""
        ...

    def _key_of(self, data: BaseModel) -> str:
        """Return the natural key carried by a create schema."""
        return str(getattr(data, self.key_field))

    def _key_column(self) -> InstrumentedAttribute:
        return getattr(self.model, self.key_field)

    def _apply_list_filters(self, query: Select, **filters: Any) -> Select:  # noqa: ARG002
        """Apply entity-specific list filters. Default: no extra filters."""
        return query

    def _order_by(self) -> list:
        return [self._key_column()]

    async def _prepare_updates(
        self,
        db: AsyncSession,  # noqa: ARG002
        entity: T,  # noqa: ARG002
        updates: dict[str, Any],
    ) -> dict[str, Any]:
        """Adjust incoming updates before they are applied. Default: unchanged."""
        return updates

    # --- Helper Methods ---

    async def get_project(self, db: AsyncSession, project_slug: str) -> Project | None:
        """Look up the parent project by slug (case-insensitive input)."""
        result = await db.execute(
            select(Project).where(Project.slug == project_slug.strip().lower()),
        )
        return result.scalar_one_or_none()

    async def _get_in_project(
        self,
        db: AsyncSession,
        project: Project,
        key: str,
    ) -> T | None:
        result = await db.execute(
            select(self.model).where(
                self.model.project_id == project.id,
                self._key_column() == key,
            ),
        )
        return result.scalar_one_or_none()

    def _track_author(self, entity: T, project: Project, username: str | None) -> None:
        """Record a username on the entity and its project (set semantics, insertion order)."""
        if not username:
            return
        entity.authors = merge_unique(entity.authors or [], username)
        entity.last_author = username
        project.authors = merge_unique(project.authors or [], username)
        project.last_author = username

    def _snapshot(self, entity: T, change_note: str | None, author: str | None) -> dict[str, Any]:
        """Capture the current payload as a history entry."""
        snapshot: dict[str, Any] = {"version": entity.current_version}
        for field in self.snapshot_fields:
            snapshot[field] = copy.deepcopy(getattr(entity, field))
        snapshot["changed_at"] = utcnow().isoformat()
        snapshot["change_note"] = change_note
        snapshot["author"] = author
        return snapshot

    def _versioned_change(self, entity: T, updates: dict[str, Any]) -> bool:
        """True when any versioned field receives a non-null value that differs from stored."""
        return any(
            updates.get(field) is not None and updates[field] != getattr(entity, field)
            for field in self.versioned_fields
        )

    @staticmethod
    def _load_snapshot(entry: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of a stored history entry with changed_at parsed to datetime."""
        snapshot = copy.deepcopy(entry)
        changed_at = snapshot.get("changed_at")
        if isinstance(changed_at, str):
            snapshot["changed_at"] = datetime.fromisoformat(changed_at)
        return snapshot

    # --- Common CRUD Operations ---

    async def create(
        self,
        db: AsyncSession,
        project_slug: str,
        data: BaseModel,
    ) -> T | None:
        """
        Create an entity in a project.

        Returns:
            The created entity, or None if the project does not exist.

        Raises:
            NaturalKeyConflictError: If the natural key is already used in the project.
        """
        project = await self.get_project(db, project_slug)
        if project is None:
            return None

        key = self._key_of(data)
        if await self._get_in_project(db, project, key) is not None:
            raise NaturalKeyConflictError(self.entity_name, key)

        entity = self._build_entity(project, data)
        entity.current_version = 1
        entity.versions = []
        self._track_author(entity, project, getattr(data, "username", None))
        db.add(entity)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise NaturalKeyConflictError(self.entity_name, key) from e

        await db.refresh(entity)
        logger.info("Created %s %s in project %s", self.entity_name, key, project.slug)
        return entity

    async def get(self, db: AsyncSession, project_slug: str, key: str) -> T | None:
        """Get an entity by natural key, or None if the project or entity is missing."""
        project = await self.get_project(db, project_slug)
        if project is None:
            return None
        return await self._get_in_project(db, project, key)

    async def list(
        self,
        db: AsyncSession,
        project_slug: str,
        tags: list[str] | None = None,
        **filters: Any,
    ) -> list[T]:
        """
        List entities in a project ordered by natural key.

        Tag filtering is any-of. Entity-specific filters combine with AND.
        A missing project yields an empty list.
        """
        project = await self.get_project(db, project_slug)
        if project is None:
            return []

        query = select(self.model).where(self.model.project_id == project.id)
        query = self._apply_list_filters(query, **filters)
        tag_filter = tags_match_any(self.model.tags, tags)
        if tag_filter is not None:
            query = query.where(tag_filter)
        query = query.order_by(*self._order_by())
        result = await db.execute(query)
        return list(result.scalars().all())

    async def update(
        self,
        db: AsyncSession,
        project_slug: str,
        key: str,
        data: BaseModel,
    ) -> T | None:
        """
        Update an entity by natural key.

        Returns:
            The updated entity, or None if the project or entity is missing.

        Raises:
            StaleVersionError: If expected_version mismatches or a concurrent write won.
        """
        project = await self.get_project(db, project_slug)
        if project is None:
            return None
        entity = await self._get_in_project(db, project, key)
        if entity is None:
            return None
        return await self._update_entity(db, project, entity, data)

    async def delete(self, db: AsyncSession, project_slug: str, key: str) -> bool:
        """Delete an entity. Returns True if deleted, False if not found."""
        entity = await self.get(db, project_slug, key)
        if entity is None:
            return False
        await db.delete(entity)
        await db.flush()
        logger.info("Deleted %s %s from project %s", self.entity_name, key, project_slug)
        return True

    async def get_version(
        self,
        db: AsyncSession,
        project_slug: str,
        key: str,
        version: int,
    ) -> dict[str, Any] | None:
        """Get a historical (or the current) version snapshot of an entity."""
        entity = await self.get(db, project_slug, key)
        if entity is None:
            return None
        return self.version_of(entity, version)

    async def get_version_history(
        self,
        db: AsyncSession,
        project_slug: str,
        key: str,
    ) -> list[dict[str, Any]] | None:
        """Get version summaries for an entity, newest first."""
        entity = await self.get(db, project_slug, key)
        if entity is None:
            return None
        return self.history_of(entity)

    # --- Record-level operations (shared with id-keyed services) ---

    async def _update_entity(
        self,
        db: AsyncSession,
        project: Project,
        entity: T,
        data: BaseModel,
    ) -> T:
        """Apply an update schema to a loaded entity following the versioning rules."""
        expected_version = getattr(data, "expected_version", None)
        if expected_version is not None and expected_version != entity.current_version:
            logger.warning(
                "Stale write on %s %s: expected version %s, found %s",
                self.entity_name, entity.id, expected_version, entity.current_version,
            )
            raise StaleVersionError(expected_version, entity.current_version)

        read_version = entity.current_version
        change_note = getattr(data, "change_note", None)
        username = getattr(data, "username", None)
        updates = data.model_dump(exclude_unset=True, exclude=set(CONTROL_FIELDS))
        updates = await self._prepare_updates(db, entity, updates)

        if self._versioned_change(entity, updates):
            entity.versions = [
                *(entity.versions or []),
                self._snapshot(entity, change_note, username),
            ]
            entity.current_version = entity.current_version + 1
            logger.debug(
                "%s %s advanced to version %s",
                self.entity_name, entity.id, entity.current_version,
            )

        for field, value in updates.items():
            if value is None and field not in self.nullable_fields:
                continue
            setattr(entity, field, value)

        self._track_author(entity, project, username)
        try:
            await db.flush()
        except StaleDataError as e:
            await db.rollback()
            logger.warning("Concurrent update lost on %s %s", self.entity_name, entity.id)
            raise StaleVersionError(read_version, None) from e

        await db.refresh(entity)
        logger.info("Updated %s %s", self.entity_name, entity.id)
        return entity

    def version_of(self, entity: T, version: int) -> dict[str, Any] | None:
        """
        Return the snapshot for a version number.

        The current version is synthesized from the live fields, with
        changed_at set to the entity's updated_at.

        Raises:
            InvalidVersionError: If version is less than 1.
        """
        if version < 1:
            raise InvalidVersionError(version)
        if version == entity.current_version:
            snapshot: dict[str, Any] = {"version": entity.current_version}
            for field in self.snapshot_fields:
                snapshot[field] = copy.deepcopy(getattr(entity, field))
            snapshot["changed_at"] = entity.updated_at
            snapshot["change_note"] = None
            snapshot["author"] = entity.last_author
            return snapshot
        for entry in entity.versions or []:
            if entry.get("version") == version:
                return self._load_snapshot(entry)
        return None

    def history_of(self, entity: T) -> list[dict[str, Any]]:
        """Summaries of every history entry plus the current version, newest first."""
        summaries = [
            {
                "version": entry["version"],
                "changed_at": self._load_snapshot(entry)["changed_at"],
                "change_note": entry.get("change_note"),
                "author": entry.get("author"),
            }
            for entry in entity.versions or []
        ]
        summaries.append({
            "version": entity.current_version,
            "changed_at": entity.updated_at,
            "change_note": CURRENT_VERSION_NOTE,
            "author": entity.last_author,
        })
        return sorted(summaries, key=lambda s: s["version"], reverse=True)

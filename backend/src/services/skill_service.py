"""Service layer for skill operations."""
from __future__ import annotations

from typing import Any

from sqlalchemy.sql import Select

from models.project import Project
from models.skill import Skill, SkillType
from schemas.skill import SkillCreate
from services.versioned_entity_service import VersionedEntityService


class SkillService(VersionedEntityService[Skill]):
    """Skill operations. Skill type is fixed at creation; `content` is versioned."""

    model = Skill
    entity_name = "skill"
    key_field = "name"

    def _build_entity(self, project: Project, data: SkillCreate) -> Skill:
        return Skill(
            project_id=project.id,
            name=data.name,
            type=SkillType(data.type).value,
            description=data.description,
            content=data.content,
            tags=list(data.tags),
            is_active=data.is_active,
        )

    def _apply_list_filters(
        self,
        query: Select,
        skill_type: SkillType | str | None = None,
        active_only: bool = False,
        **_: Any,
    ) -> Select:
        if skill_type is not None:
            query = query.where(Skill.type == SkillType(skill_type).value)
        if active_only:
            query = query.where(Skill.is_active.is_(True))
        return query


skill_service = SkillService()

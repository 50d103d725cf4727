"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin, VersionedMixin
from models.project import Project
from models.document import DocumentType, ProjectDocument
from models.skill import Skill, SkillType
from models.snippet import CodeSnippet
from models.prompt_template import PromptTemplate
from models.todo import Todo, TodoPriority, TodoStatus

__all__ = [
    "Base",
    "CodeSnippet",
    "DocumentType",
    "Project",
    "ProjectDocument",
    "PromptTemplate",
    "Skill",
    "SkillType",
    "TimestampMixin",
    "Todo",
    "TodoPriority",
    "TodoStatus",
    "UUIDv7Mixin",
    "VersionedMixin",
]

"""
Federated search across documents, skills, code snippets and prompt templates.

Each collection is ranked in the database: a relevance column sums the weight
of every (query term, field) pair where the lowercased field contains the
term, and the query returns the best SEARCH_CANDIDATE_LIMIT rows. The
per-collection hits are then merged into one globally ranked list and
paginated.

Ties are broken by collection (document < skill < snippet < prompt), then
project slug, then name, so the same query always yields the same page
boundaries.
"""
import logging
import operator
from collections.abc import Callable
from dataclasses import dataclass
from functools import reduce
from typing import Any

from sqlalchemy import String, case, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.functions import lower_for
from models.document import ProjectDocument
from models.project import Project
from models.prompt_template import PromptTemplate
from models.skill import Skill
from models.snippet import CodeSnippet
from schemas.search import SearchType
from services.utils import tags_match_any

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
EXCERPT_LEAD = 50
EXCERPT_LEADING_WORD_WINDOW = 20
EXCERPT_TRAILING_WORD_WINDOW = 30

TYPE_ORDER = {t: i for i, t in enumerate(SearchType)}

# Search field configs: (attribute name, weight). "tags" is matched against the JSON list.
DOCUMENT_SEARCH_FIELDS: list[tuple[str, float]] = [
    ("title", 10.0), ("content", 5.0), ("tags", 3.0),
]
SKILL_SEARCH_FIELDS: list[tuple[str, float]] = [
    ("name", 10.0), ("description", 5.0), ("content", 3.0), ("tags", 2.0),
]
SNIPPET_SEARCH_FIELDS: list[tuple[str, float]] = [
    ("name", 10.0), ("description", 5.0), ("code", 3.0), ("tags", 2.0),
]
PROMPT_SEARCH_FIELDS: list[tuple[str, float]] = [
    ("name", 10.0), ("description", 5.0), ("content", 3.0), ("tags", 2.0),
]


@dataclass(frozen=True)
class SearchCollection:
    """How one collection is searched and presented."""

    type: SearchType
    model: Any
    fields: list[tuple[str, float]]
    name_field: str
    title_of: Callable[[Any], str | None]
    excerpt_source_of: Callable[[Any], str]


def _prompt_title(prompt: PromptTemplate) -> str:
    return f"{prompt.name} ({prompt.category})" if prompt.category else prompt.name


COLLECTIONS: dict[SearchType, SearchCollection] = {
    SearchType.DOCUMENT: SearchCollection(
        type=SearchType.DOCUMENT,
        model=ProjectDocument,
        fields=DOCUMENT_SEARCH_FIELDS,
        name_field="type",
        title_of=lambda d: d.title,
        excerpt_source_of=lambda d: d.content,
    ),
    SearchType.SKILL: SearchCollection(
        type=SearchType.SKILL,
        model=Skill,
        fields=SKILL_SEARCH_FIELDS,
        name_field="name",
        title_of=lambda s: None,  # noqa: ARG005
        excerpt_source_of=lambda s: s.description or s.content,
    ),
    SearchType.SNIPPET: SearchCollection(
        type=SearchType.SNIPPET,
        model=CodeSnippet,
        fields=SNIPPET_SEARCH_FIELDS,
        name_field="name",
        title_of=lambda s: f"{s.name} ({s.language})",
        excerpt_source_of=lambda s: s.description or s.code,
    ),
    SearchType.PROMPT: SearchCollection(
        type=SearchType.PROMPT,
        model=PromptTemplate,
        fields=PROMPT_SEARCH_FIELDS,
        name_field="name",
        title_of=_prompt_title,
        excerpt_source_of=lambda p: p.description or p.content,
    ),
}


def split_terms(query: str) -> list[str]:
    """Whitespace-separated, lowercased query terms, duplicates removed in order."""
    terms: list[str] = []
    for term in query.lower().split():
        if term not in terms:
            terms.append(term)
    return terms


def build_excerpt(text: str | None, terms: list[str], length: int = EXCERPT_LENGTH) -> str:
    """
    Build a short excerpt centred on the first matching query term.

    The window starts EXCERPT_LEAD characters before the first term found
    (in query order). A leading partial word is dropped when a space falls in
    the first 20 characters and the window does not start at 0; a trailing
    partial word is dropped when the last space lies within the final 30
    characters and the window ends before the text does.
    """
    if not text:
        return ""
    lowered = text.lower()
    start = 0
    for term in terms:
        position = lowered.find(term)
        if position != -1:
            start = max(0, position - EXCERPT_LEAD)
            break

    excerpt = text[start:start + length]
    if start > 0:
        first_space = excerpt.find(" ")
        if 0 < first_space < EXCERPT_LEADING_WORD_WINDOW:
            excerpt = excerpt[first_space + 1:]
        excerpt = "..." + excerpt
    if start + length < len(text):
        last_space = excerpt.rfind(" ")
        if last_space > len(excerpt) - EXCERPT_TRAILING_WORD_WINDOW:
            excerpt = excerpt[:last_space]
        excerpt = excerpt + "..."
    return excerpt.strip()


def build_search_rank(
    dialect_name: str,
    model: Any,
    fields: list[tuple[str, float]],
    terms: list[str],
) -> tuple[Any, list[Any]]:
    """
    Build the relevance column and the match conditions for one collection.

    Every (term, field) pair where the lowercased field contains the term adds
    that field's weight. Matching is a literal substring test: LIKE wildcards
    in the query are escaped.

    Returns:
        (labeled "search_rank" column, list of per-pair match conditions)
    """
    matches = []
    cases = []
    for term in terms:
        for field, weight in fields:
            column = getattr(model, field)
            if field == "tags":
                column = cast(column, String)
            matched = lower_for(dialect_name, column).contains(term, autoescape=True)
            matches.append(matched)
            cases.append(case((matched, weight), else_=0.0))
    return reduce(operator.add, cases).label("search_rank"), matches


class SearchService:
    """Federated multi-collection search."""

    async def _search_collection(
        self,
        db: AsyncSession,
        collection: SearchCollection,
        terms: list[str],
        project: Project | None,
        tags: list[str] | None,
    ) -> list[dict[str, Any]]:
        model = collection.model
        dialect_name = db.get_bind().dialect.name
        search_rank, matches = build_search_rank(dialect_name, model, collection.fields, terms)
        name_column = getattr(model, collection.name_field)

        query = (
            select(model, Project.slug, search_rank)
            .join(Project, model.project_id == Project.id)
            .where(or_(*matches))
        )
        if project is not None:
            query = query.where(model.project_id == project.id)
        if collection.type == SearchType.SKILL:
            query = query.where(Skill.is_active.is_(True))
        tag_filter = tags_match_any(model.tags, tags)
        if tag_filter is not None:
            query = query.where(tag_filter)
        query = query.order_by(
            search_rank.desc(), Project.slug, name_column,
        ).limit(get_settings().search_candidate_limit)

        result = await db.execute(query)
        return [
            {
                "type": collection.type,
                "project_slug": slug,
                "name": getattr(record, collection.name_field),
                "title": collection.title_of(record),
                "excerpt": build_excerpt(collection.excerpt_source_of(record), terms),
                "score": round(float(rank), 4),
                "tags": list(record.tags or []),
                "updated_at": record.updated_at,
            }
            for record, slug, rank in result.all()
        ]

    async def search(
        self,
        db: AsyncSession,
        query: str,
        project_slug: str | None = None,
        types: list[SearchType] | None = None,
        tags: list[str] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Search content across collections.

        Returns:
            Dict with `results` (the requested page), `total` (merged hit count),
            `offset`, `limit` and `has_more`. An unknown project_slug yields no results.

        Raises:
            ValueError: If the query is empty or limit/offset are out of range.
        """
        terms = split_terms(query)
        if not terms:
            raise ValueError("Search query cannot be empty")
        if not 1 <= limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        empty = {"results": [], "total": 0, "offset": offset, "limit": limit, "has_more": False}

        project = None
        if project_slug:
            result = await db.execute(
                select(Project).where(Project.slug == project_slug.strip().lower()),
            )
            project = result.scalar_one_or_none()
            if project is None:
                return empty

        selected = [SearchType(t) for t in types] if types else list(SearchType)
        merged: list[dict[str, Any]] = []
        # Sequential on one session: the first failing collection aborts the search
        for search_type in sorted(set(selected), key=TYPE_ORDER.__getitem__):
            merged.extend(
                await self._search_collection(
                    db, COLLECTIONS[search_type], terms, project, tags,
                ),
            )

        merged.sort(
            key=lambda h: (-h["score"], TYPE_ORDER[h["type"]], h["project_slug"], h["name"]),
        )
        total = len(merged)
        page = merged[offset:offset + limit]
        logger.debug("Search %r matched %s results", query, total)
        return {
            "results": page,
            "total": total,
            "offset": offset,
            "limit": limit,
            "has_more": offset + len(page) < total,
        }


search_service = SearchService()

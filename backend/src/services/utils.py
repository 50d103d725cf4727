"""Shared utility functions for service layer."""
from collections.abc import Iterable
from typing import Any

from sqlalchemy import String, cast, or_
from sqlalchemy.sql.elements import ColumnElement


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def merge_unique(existing: Iterable[str], *new: str | None) -> list[str]:
    """Append values not already present, keeping first-seen order."""
    merged = list(existing)
    for value in new:
        if value and value not in merged:
            merged.append(value)
    return merged


def tags_match_any(column: Any, tags: Iterable[str] | None) -> ColumnElement[bool] | None:
    """
    Build an any-of filter over a JSON tag list column.

    Stored tags are normalized lowercase and never contain quotes, so matching
    the quoted tag inside the serialized list is exact on SQLite and PostgreSQL.

    Returns:
        The condition, or None when the filter is empty (matches everything).
    """
    wanted = [tag.strip().lower() for tag in tags or [] if tag and tag.strip()]
    if not wanted:
        return None
    serialized = cast(column, String)
    return or_(*(
        serialized.like(f'%"{escape_ilike(tag)}"%', escape="\\") for tag in wanted
    ))

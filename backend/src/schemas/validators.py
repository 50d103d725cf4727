"""
Shared validation functions for Pydantic schemas.

This module contains validators used across multiple entity schemas (projects, documents,
skills, snippets, prompt templates, todos).
"""
import re

# Tag format: lowercase, starts with a letter or number; dots, underscores, plus and hash
# allowed after that so tags like 'next.js', 'c++' and 'c#' survive normalization.
TAG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._+#-]*$")

# Project slug: lowercase alphanumeric with hyphens (e.g., 'my-app', 'react-native-expo')
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

# Skill, snippet and prompt names: letters, numbers, underscores and hyphens
ENTITY_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# Template variable names: valid Jinja2 identifiers
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Args:
        tag: The tag string to validate.

    Returns:
        The normalized tag (lowercase, trimmed).

    Raises:
        ValueError: If tag is empty or has invalid format.
    """
    normalized = tag.lower().strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if not TAG_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid tag format: '{normalized}'. "
            "Use lowercase letters, numbers, hyphens, dots, underscores, '+' or '#'.",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Empty strings are dropped and duplicates removed, preserving first occurrence order.

    Raises:
        ValueError: If any tag has invalid format.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        trimmed = tag.lower().strip()
        if not trimmed:
            continue  # Skip empty tags silently
        validated = validate_and_normalize_tag(trimmed)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)
    return normalized


def validate_slug(slug: str) -> str:
    """Lowercase and validate a project slug."""
    normalized = slug.strip().lower()
    if not normalized:
        raise ValueError("Slug cannot be empty")
    if not SLUG_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid slug format: '{normalized}'. "
            "Use lowercase letters, numbers, and hyphens only (e.g., 'my-project').",
        )
    return normalized


def validate_entity_name(name: str) -> str:
    """Validate a skill, snippet or prompt template name."""
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("Name cannot be empty")
    if not ENTITY_NAME_PATTERN.match(trimmed):
        raise ValueError(
            f"Invalid name format: '{trimmed}'. "
            "Use letters, numbers, underscores and hyphens only.",
        )
    return trimmed


def validate_variable_name(name: str) -> str:
    """Validate a template variable name."""
    trimmed = name.strip()
    if not VARIABLE_NAME_PATTERN.match(trimmed):
        raise ValueError(
            f"Invalid variable name: '{trimmed}'. "
            "Must start with a letter or underscore and contain only letters, "
            "numbers, and underscores.",
        )
    return trimmed


def check_duplicate_variable_names(variables: list | None) -> None:
    """
    Check for duplicate variable names in a list of template variables.

    Raises:
        ValueError: If duplicate names are found.
    """
    if not variables:
        return
    names = [var.name for var in variables]
    duplicates = [name for name in names if names.count(name) > 1]
    if duplicates:
        unique_duplicates = sorted(set(duplicates))
        raise ValueError(
            f"Duplicate variable name(s): {', '.join(unique_duplicates)}. "
            "Each variable must have a unique name.",
        )

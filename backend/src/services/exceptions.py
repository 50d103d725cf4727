"""Shared exceptions for service layer operations."""


class ConflictError(Exception):
    """
    Base class for write conflicts.

    Raised when a write collides with existing state (a duplicate key, or a
    record that changed since it was read). The API maps it to HTTP 409.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NaturalKeyConflictError(ConflictError):
    """Raised when a document type or a skill/snippet/prompt name already exists in a project."""

    def __init__(self, entity_name: str, key: str) -> None:
        self.entity_name = entity_name
        self.key = key
        super().__init__(f"A {entity_name} with key '{key}' already exists in this project")


class SlugConflictError(ConflictError):
    """Raised when a project slug is already taken."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"A project with slug '{slug}' already exists")


class StaleVersionError(ConflictError):
    """Raised when a record's current_version no longer matches the version the caller read."""

    def __init__(self, expected: int | None, actual: int | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Record was modified concurrently (expected version {expected}, found {actual})",
        )


class InvalidVersionError(Exception):
    """Raised when a requested version number is not a positive integer."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Invalid version number: {version}")


class TemplateError(Exception):
    """Raised when a prompt template cannot be rendered."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class MissingRequiredVariableError(TemplateError):
    """Raised when a required template variable has no supplied value and no default."""

    def __init__(self, variable_name: str) -> None:
        self.variable_name = variable_name
        super().__init__(f"Missing required variable: {variable_name}")


class TodoHierarchyError(Exception):
    """Raised when a todo parent is missing, in another project, or would create a cycle."""

    def __init__(self, message: str) -> None:
        super().__init__(message)

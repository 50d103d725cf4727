"""SQL functions shared by SQLite and PostgreSQL queries."""
from typing import Any

from sqlalchemy import event, func
from sqlalchemy.ext.asyncio import AsyncEngine

# SQLite's built-in lower() folds ASCII letters only
UNICODE_LOWER = "unicode_lower"


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def register_sqlite_functions(engine: AsyncEngine) -> None:
    """
    Register Python-backed SQL functions on every new SQLite connection.

    `unicode_lower(x)` gives SQLite the Unicode case folding that PostgreSQL's
    lower() already has, so case-insensitive matching behaves the same on both.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _register(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.create_function(UNICODE_LOWER, 1, _unicode_lower, deterministic=True)


def lower_for(dialect_name: str, expression: Any) -> Any:
    """Unicode-aware lower() for the given dialect."""
    if dialect_name == "sqlite":
        return getattr(func, UNICODE_LOWER)(expression)
    return func.lower(expression)

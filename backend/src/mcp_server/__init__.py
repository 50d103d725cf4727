"""MCP server for the Context Manager."""

from .server import mcp

__all__ = ["mcp"]

"""Entry point for running the MCP server."""

import asyncio
import logging

from core.config import get_settings
from db.session import create_tables

from .server import mcp


def main(host: str | None = None, port: int | None = None) -> None:
    """Run the MCP server on the configured transport, optionally overriding host and port."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if settings.auto_create_tables:
        asyncio.run(create_tables())

    if settings.mcp_transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport="http",
            host=host or settings.mcp_host,
            port=port or settings.mcp_port,
            stateless_http=True,
        )


if __name__ == "__main__":
    main()

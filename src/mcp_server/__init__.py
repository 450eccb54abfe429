"""MCP tools and resources for Confluence.

Exposes the Confluence operations to AI assistants over the Model Context
Protocol (STDIO transport).
"""

from .context import ServerContext
from .dispatcher import RequestDispatcher
from .server import build_server, run_stdio

__all__ = [
    "ServerContext",
    "RequestDispatcher",
    "build_server",
    "run_stdio",
]

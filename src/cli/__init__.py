"""Command-line interface for the Confluence MCP server.

This package provides the `confluence-mcp` CLI tool that runs the STDIO
server and lets an operator set up, validate and renew credentials from a
terminal.
"""

from .models import ExitCode
from .output import OutputHandler

__all__ = [
    'ExitCode',
    'OutputHandler',
]

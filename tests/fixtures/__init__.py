"""Test fixtures for the Confluence MCP server unit tests.

This module provides builders for configuration records, mock config stores
and page JSON in the shape returned by the Confluence REST API.
"""

from .sample_config import make_config, make_config_store, make_page

__all__ = [
    "make_config",
    "make_config_store",
    "make_page",
]

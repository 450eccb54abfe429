"""Configuration store for the Confluence MCP server.

Holds the credentials and rate-limit settings in a single JSON file and
validates credentials live before anything is persisted.
"""

from .config_store import ConfigStore, config_from_dict, config_to_dict
from .models import ConfluenceConfig

__all__ = [
    "ConfigStore",
    "ConfluenceConfig",
    "config_from_dict",
    "config_to_dict",
]

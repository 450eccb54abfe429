"""Authentication helpers for the Confluence REST API.

Confluence Cloud accepts HTTP Basic authentication built from the account
email and an API token. This module derives the request headers from the
configuration record held by the config store.
"""

import base64
from typing import TYPE_CHECKING, Dict, NamedTuple

if TYPE_CHECKING:
    from src.config.models import ConfluenceConfig


class Credentials(NamedTuple):
    """Confluence API credentials."""
    url: str
    user: str
    api_token: str


def get_credentials(config: "ConfluenceConfig") -> Credentials:
    """Extract the credential triple from a configuration record.

    Args:
        config: Current configuration snapshot

    Returns:
        Credentials: url is the REST root (site URL + /wiki)
    """
    return Credentials(
        url=config.api_base_url,
        user=config.confluence_email,
        api_token=config.confluence_api_token,
    )


def build_auth_headers(config: "ConfluenceConfig") -> Dict[str, str]:
    """Build the headers sent with every Confluence request.

    Args:
        config: Current configuration snapshot

    Returns:
        Dict with Authorization (Basic), Content-Type and Accept headers

    Example:
        >>> headers = build_auth_headers(config)
        >>> headers['Authorization'].startswith('Basic ')
        True
    """
    raw = f"{config.confluence_email}:{config.confluence_api_token}"
    encoded = base64.b64encode(raw.encode('utf-8')).decode('ascii')
    return {
        'Authorization': f'Basic {encoded}',
        'Content-Type': 'application/json',
        'Accept': 'application/json',
    }

"""Configuration and page fixtures shared by the unit tests."""

from unittest.mock import Mock

from src.config.models import ConfluenceConfig


def make_config(**overrides) -> ConfluenceConfig:
    """Build a valid configuration record, overriding selected fields."""
    values = {
        'confluence_base_url': 'https://test.atlassian.net',
        'confluence_email': 'test@example.com',
        'confluence_api_token': 'token123',
    }
    values.update(overrides)
    return ConfluenceConfig(**values)


def make_config_store(config: ConfluenceConfig = None) -> Mock:
    """Create a mock config store serving the given snapshot."""
    store = Mock()
    store.get_config.return_value = config or make_config()
    store.load.return_value = store.get_config.return_value
    return store


def make_page(
    page_id: str = '123',
    title: str = 'Test Page',
    body: str = '<p>Original body</p>',
    version: int = 5,
    space_key: str = 'DEV'
) -> dict:
    """Page JSON in the shape returned by /rest/api/content/{id}."""
    return {
        'id': page_id,
        'type': 'page',
        'title': title,
        'space': {'key': space_key},
        'version': {'number': version},
        'body': {'storage': {'value': body, 'representation': 'storage'}},
    }
